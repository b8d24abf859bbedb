"""
Tests for the Qt install worker.

``run()`` is called directly so the signals fire synchronously on the test
thread; the thread start/queueing machinery itself belongs to Qt.
"""

import pytest

QtCore = pytest.importorskip("PySide6.QtCore")

from install_worker import InstallWorker  # noqa: E402
from mod_manager import InstallProgress, InstallSummary  # noqa: E402


@pytest.fixture(scope="module")
def qt_app():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


def collect(worker):
    events = {"log": [], "progress": [], "finished": [], "failed": [], "cancelled": []}
    worker.log_signal.connect(events["log"].append)
    worker.progress_signal.connect(events["progress"].append)
    worker.finished_signal.connect(events["finished"].append)
    worker.failed_signal.connect(events["failed"].append)
    worker.cancelled_signal.connect(lambda: events["cancelled"].append(True))
    return events


def test_worker_installs_and_reports(qt_app, dirs, make_mod):
    vortex, target = dirs
    mods = [make_mod("ModA", {"a.pak": "a"}, order=0), make_mod("ModB", {"b.pak": "b"}, order=1)]
    worker = InstallWorker(vortex, target, mods)
    events = collect(worker)

    worker.run()

    assert len(events["finished"]) == 1
    summary = events["finished"][0]
    assert isinstance(summary, InstallSummary)
    assert summary.installed_count == 2
    assert all(isinstance(p, InstallProgress) for p in events["progress"])
    assert [p.percentage for p in events["progress"]] == [0, 50, 100]
    assert any("Installation completed" in line for line in events["log"])
    assert (target / "AAB-ModB" / "b.pak").exists()
    assert not events["failed"]


def test_worker_keeps_its_own_copy_of_mods(qt_app, dirs, make_mod):
    vortex, target = dirs
    mods = [make_mod("ModA", {"a.pak": "a"})]
    worker = InstallWorker(vortex, target, mods)

    mods[0].is_enabled = False
    collect(worker)
    worker.run()

    assert (target / "AAA-ModA" / "a.pak").exists()


def test_worker_cancel(qt_app, dirs, make_mod):
    vortex, target = dirs
    worker = InstallWorker(vortex, target, [make_mod("ModA", {"a.pak": "a"})])
    events = collect(worker)

    worker.cancel()
    worker.run()

    assert events["cancelled"] == [True]
    assert not events["finished"]


def test_worker_reports_setup_failure(qt_app, dirs, make_mod, tmp_path):
    vortex, _ = dirs
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    worker = InstallWorker(vortex, blocker, [make_mod("ModA", {"a.pak": "a"})])
    events = collect(worker)

    worker.run()

    assert len(events["failed"]) == 1
    assert "not a directory" in events["failed"][0]
    assert not events["finished"]


def test_worker_reports_negative_order(qt_app, dirs, make_mod):
    vortex, target = dirs
    worker = InstallWorker(vortex, target, [make_mod("ModA", {"a.pak": "a"}, order=-1)])
    events = collect(worker)

    worker.run()

    assert len(events["failed"]) == 1
    assert "negative" in events["failed"][0]
    assert not events["finished"]
