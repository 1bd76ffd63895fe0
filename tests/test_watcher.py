from watchdog.events import FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from pages_dev.watcher import RuleWatcher, _RuleFileEventHandler


def make_watcher(tmp_path, redirects=None, headers=None):
    if redirects is not None:
        (tmp_path / "_redirects").write_text(redirects)
    if headers is not None:
        (tmp_path / "_headers").write_text(headers)
    watcher = RuleWatcher(str(tmp_path))
    watcher.load()
    return watcher


def test_load_reads_both_rule_files(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n", "/*\n  X-A: 1\n")
    metadata = watcher.metadata_ref.current

    assert [rule.source for rule in metadata.redirects] == ["/old"]
    assert [rule.path for rule in metadata.headers] == ["/*"]


def test_load_without_rule_files(tmp_path):
    watcher = make_watcher(tmp_path)
    assert watcher.metadata_ref.current.redirects == ()
    assert watcher.metadata_ref.current.headers == ()


def test_load_survives_unreadable_rule_file(tmp_path):
    (tmp_path / "_redirects").write_bytes(b"\x00\xff\xfe")
    watcher = make_watcher(tmp_path, headers="/*\n  X-A: 1\n")

    assert watcher.metadata_ref.current.redirects == ()
    assert len(watcher.metadata_ref.current.headers) == 1


def test_reload_reparses_only_the_changed_file(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n", "/*\n  X-A: 1\n")
    before = watcher.metadata_ref.current
    headers_before = before.headers

    (tmp_path / "_redirects").write_text("/old /newer 302\n")
    assert watcher.reload(str(tmp_path / "_redirects"))

    after = watcher.metadata_ref.current
    assert after is not before
    assert after.redirects[0].destination == "/newer"
    assert after.headers == headers_before
    # The snapshot captured before the change is untouched
    assert before.redirects[0].destination == "/new"


def test_failed_reload_keeps_previous_snapshot(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n")
    before = watcher.metadata_ref.current

    (tmp_path / "_redirects").write_text("/old /new\x00 301\n")
    assert not watcher.reload(str(tmp_path / "_redirects"))

    assert watcher.metadata_ref.current is before


def test_reload_ignores_other_files(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n")
    version = watcher.metadata_ref.version

    assert not watcher.reload(str(tmp_path / "index.html"))
    assert watcher.metadata_ref.version == version


def test_events_for_rule_files_trigger_reload(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n")
    handler = _RuleFileEventHandler(watcher)

    (tmp_path / "_headers").write_text("/*\n  X-A: 1\n")
    handler.dispatch(FileCreatedEvent(str(tmp_path / "_headers")))
    assert len(watcher.metadata_ref.current.headers) == 1

    (tmp_path / "_redirects").write_text("/old /moved 301\n")
    handler.dispatch(FileModifiedEvent(str(tmp_path / "_redirects")))
    assert watcher.metadata_ref.current.redirects[0].destination == "/moved"

    (tmp_path / "_redirects.tmp").write_text("/old /renamed 301\n")
    (tmp_path / "_redirects.tmp").rename(tmp_path / "_redirects")
    handler.dispatch(FileMovedEvent(str(tmp_path / "_redirects.tmp"), str(tmp_path / "_redirects")))
    assert watcher.metadata_ref.current.redirects[0].destination == "/renamed"


def test_events_for_other_files_are_ignored(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n")
    handler = _RuleFileEventHandler(watcher)
    version = watcher.metadata_ref.version

    handler.dispatch(FileModifiedEvent(str(tmp_path / "index.html")))

    assert watcher.metadata_ref.version == version


def test_deleting_a_rule_file_keeps_the_rules(tmp_path):
    watcher = make_watcher(tmp_path, "/old /new 301\n")
    handler = _RuleFileEventHandler(watcher)
    before = watcher.metadata_ref.current

    (tmp_path / "_redirects").unlink()
    handler.dispatch(FileDeletedEvent(str(tmp_path / "_redirects")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "_redirects")))

    assert watcher.metadata_ref.current is before


def test_start_on_missing_directory_does_not_raise(tmp_path):
    watcher = RuleWatcher(str(tmp_path / "missing"))
    watcher.start()
    watcher.stop()
