import threading

from accessgate.app_shell.reaper import Reaper


def test_run_once_runs_every_task():
    calls = []
    reaper = Reaper(interval_seconds=60)
    reaper.add_task("a", lambda: calls.append("a"))
    reaper.add_task("b", lambda: calls.append("b"))

    reaper.run_once()

    assert calls == ["a", "b"]


def test_failing_task_does_not_stop_others(caplog):
    calls = []

    def boom():
        raise RuntimeError("store down")

    reaper = Reaper(interval_seconds=60)
    reaper.add_task("boom", boom)
    reaper.add_task("after", lambda: calls.append("after"))

    reaper.run_once()

    assert calls == ["after"]
    assert "Reaper task boom failed" in caplog.text


def test_start_and_stop():
    ran = threading.Event()
    reaper = Reaper(interval_seconds=0.01)
    reaper.add_task("signal", ran.set)

    reaper.start()
    try:
        assert reaper.running
        assert ran.wait(timeout=2)
    finally:
        reaper.stop()

    assert not reaper.running


def test_stop_without_start_is_noop():
    reaper = Reaper(interval_seconds=1)
    reaper.stop()
    assert not reaper.running
