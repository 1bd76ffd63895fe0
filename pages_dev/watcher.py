"""
Hot reload of _redirects and _headers.

A watchdog observer runs on its own thread. When one of the two rule files
changes, only that file is parsed again; the new snapshot is compiled and
published to the MetadataRef the gateway reads from.
"""
import logging
import os
import threading
from typing import List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ParseError
from .metadata import MetadataRef, compile_metadata, load_rule_file
from .models import HeaderRule, RedirectRule
from .rules import parse_headers, parse_redirects

logger = logging.getLogger(__name__)

REDIRECTS_FILENAME = "_redirects"
HEADERS_FILENAME = "_headers"


class _RuleFileEventHandler(FileSystemEventHandler):
    """Forwards events for the two rule files to the watcher, ignores the rest."""

    def __init__(self, watcher: "RuleWatcher"):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent):
        self._changed(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent):
        self._changed(event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent):
        # Editors that save via rename produce a move onto the rule file
        self._changed(event.dest_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent):
        path = _normalize(event.src_path)
        if not event.is_directory and path in self.watcher.watched_paths:
            logger.info(f"{os.path.basename(path)} deleted. Keeping the current rules.")

    def _changed(self, raw_path, is_directory: bool):
        if is_directory:
            return
        path = _normalize(raw_path)
        if path in self.watcher.watched_paths:
            self.watcher.reload(path)


def _normalize(raw_path) -> str:
    return os.path.abspath(os.fsdecode(raw_path))


class RuleWatcher:
    """Keeps the parsed rule sets for one directory and republishes them on change."""

    def __init__(self, directory: str, metadata_ref: Optional[MetadataRef] = None):
        self.directory = os.path.abspath(directory)
        self.redirects_file = os.path.join(self.directory, REDIRECTS_FILENAME)
        self.headers_file = os.path.join(self.directory, HEADERS_FILENAME)
        self.metadata_ref = metadata_ref or MetadataRef()

        self.redirects: Optional[List[RedirectRule]] = None
        self.headers: Optional[List[HeaderRule]] = None

        self._reload_lock = threading.Lock()
        self._observer = None

    @property
    def watched_paths(self):
        return (self.redirects_file, self.headers_file)

    def load(self) -> None:
        """Read both rule files and publish the first snapshot."""
        self.redirects = self._parse(self.redirects_file, parse_redirects)
        self.headers = self._parse(self.headers_file, parse_headers)
        self._publish()

    def reload(self, path: str) -> bool:
        """
        Re-parse one rule file and publish a new snapshot.

        Returns False when the file could not be read or parsed; the
        snapshot already in use stays in effect.
        """
        path = os.path.abspath(path)
        if path == self.redirects_file:
            parser, attribute = parse_redirects, "redirects"
        elif path == self.headers_file:
            parser, attribute = parse_headers, "headers"
        else:
            return False

        logger.info(f"{os.path.basename(path)} modified. Re-evaluating...")
        with self._reload_lock:
            try:
                rules = load_rule_file(path, parser, logger.warning)
            except (OSError, ValueError, ParseError) as e:
                logger.warning(f"Could not re-evaluate {os.path.basename(path)}, keeping previous rules: {e}")
                return False
            if rules is None:
                # Gone again before we got to read it
                return False
            setattr(self, attribute, rules)
            self._publish()
        return True

    def start(self) -> None:
        if self._observer is not None:
            return
        if not os.path.isdir(self.directory):
            logger.warning(f"Not watching rule files: {self.directory} is not a directory")
            return
        observer = Observer()
        observer.daemon = True
        observer.schedule(_RuleFileEventHandler(self), self.directory, recursive=False)
        observer.start()
        self._observer = observer
        logger.info(f"Watching {REDIRECTS_FILENAME} and {HEADERS_FILENAME} in {self.directory}")

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)

    def _parse(self, path: str, parser) -> Optional[list]:
        try:
            return load_rule_file(path, parser, logger.warning)
        except (OSError, ValueError, ParseError) as e:
            logger.warning(f"Ignoring {os.path.basename(path)}: {e}")
            return None

    def _publish(self) -> None:
        metadata = compile_metadata(self.redirects, self.headers, logger.warning)
        self.metadata_ref.publish(metadata)
