"""Run the refresh-token purge worker as a standalone process."""

import time

from authcore.main import create_auth_core


def main() -> None:
    core = create_auth_core()
    core.purge_worker.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        core.close()


if __name__ == "__main__":
    main()
