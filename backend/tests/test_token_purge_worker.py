import time

from authcore.services.token_purge_worker import TokenPurgeWorker

PASSWORD = "Aa1!aaaa"


def test_run_once_purges_and_counts(sessions):
    registered = sessions.register("a@x.com", PASSWORD, "A", "B")
    sessions.logout(registered.tokens.refresh_token)

    worker = TokenPurgeWorker(sessions, interval_seconds=60)
    assert worker.run_once() == 1
    assert worker.run_once() == 0

    status = worker.status()
    assert status["run_count"] == 2
    assert status["purged_count"] == 1
    assert status["running"] is False


def test_worker_thread_runs_purge(sessions):
    registered = sessions.register("a@x.com", PASSWORD, "A", "B")
    sessions.logout(registered.tokens.refresh_token)

    worker = TokenPurgeWorker(sessions, interval_seconds=0.1)
    worker.start()
    try:
        assert worker.is_running() is True
        deadline = time.time() + 5
        while worker.status()["purged_count"] < 1 and time.time() < deadline:
            time.sleep(0.05)
    finally:
        worker.stop()

    status = worker.status()
    assert status["purged_count"] == 1
    assert status["last_heartbeat"] > 0
    assert status["running"] is False


def test_worker_survives_purge_errors(sessions, monkeypatch):
    def boom():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(sessions, "purge_expired", boom)
    worker = TokenPurgeWorker(sessions, interval_seconds=0.1)
    worker.start()
    try:
        deadline = time.time() + 5
        while worker.status()["error_count"] < 1 and time.time() < deadline:
            time.sleep(0.05)
        assert worker.is_running() is True
    finally:
        worker.stop()

    assert worker.status()["error_count"] >= 1
