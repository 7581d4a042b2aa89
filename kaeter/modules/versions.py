"""Version ledger (``versions.yaml``) reading, mutation and writing.

A ledger looks like::

    # Identifies this module within the fat repo.
    id: ch.open.tools:kaeter
    type: Makefile
    versioning: SemVer
    versions:
        0.0.0: 1970-01-01T00:00:00Z|INIT
        0.1.0: 2020-02-02T10:00:00Z|6d8f1cba2ea5e5f3ae1ec28ca4da8f3c5a23a8c1|stable

Hand written comments must survive a read-modify-write cycle. Instead of
re-emitting the whole document, the retained source text is edited in place:
PyYAML's composed node tree gives the exact character span of every key and
value under ``versions``, so only scalars that changed are replaced and new
entries are appended after the last one with the same indentation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import yaml

from kaeter.core.errors import KaeterError, join_errors
from kaeter.core.result import Err, Ok, Result
from kaeter.core.structured import get_str, get_str_list, get_str_map, get_table, is_str_dict
from kaeter.platform.files import atomic_write_text

from .find import find_versions_files
from .version import (
    VERSION_STRING_PATTERN,
    Bump,
    SemanticVersion,
    VersionIdentifier,
    VersioningScheme,
    VersionString,
    parse_semantic_version,
    parse_version,
)

__all__ = [
    "AUTORELEASE_REF",
    "DEFAULT_LEDGER_NAME",
    "INIT_REF",
    "VersionMetadata",
    "Versions",
    "format_timestamp",
    "get_versions_file_path",
    "parse_release_data",
    "parse_versions",
    "read_versions_file",
]

INIT_REF = "INIT"
AUTORELEASE_REF = "AUTORELEASE"
DEFAULT_LEDGER_NAME = "versions.yaml"

_NULL_TAG = "tag:yaml.org,2002:null"
_NEW_MAPPING_INDENT = 4


def format_timestamp(ts: datetime) -> str:
    """RFC3339 with second precision; UTC renders as ``Z``, naive means UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    text = ts.replace(microsecond=0).isoformat()
    if ts.utcoffset() == timedelta(0):
        text = text.removesuffix("+00:00") + "Z"
    return text


def parse_release_data(raw: str) -> Result[tuple[datetime, str, list[str]], KaeterError]:
    """Split ``<RFC3339>|<commit>[|tag1,tag2]`` into its parts.

    Tags are trimmed and empty tags dropped.
    """
    parts = raw.split("|")
    if len(parts) < 2:
        return Err(KaeterError(kind="validation", message=f"cannot parse release data: {raw!r}"))
    try:
        timestamp = datetime.fromisoformat(parts[0])
    except ValueError as e:
        return Err(KaeterError(kind="validation", message=f"invalid release timestamp in {raw!r}: {e}"))
    if timestamp.tzinfo is None:
        return Err(KaeterError(kind="validation", message=f"release timestamp has no timezone: {raw!r}"))

    tags: list[str] = []
    if len(parts) > 2 and parts[2]:
        tags = [t.strip() for t in parts[2].split(",") if t.strip()]
    return Ok((timestamp, parts[1], tags))


@dataclass(slots=True)
class VersionMetadata:
    """One release entry of a ledger."""

    number: VersionIdentifier
    timestamp: datetime
    commit_id: str
    tags: list[str] = field(default_factory=list)

    @property
    def is_autorelease(self) -> bool:
        return self.commit_id == AUTORELEASE_REF

    @property
    def is_init(self) -> bool:
        return self.commit_id == INIT_REF

    def release_data(self) -> str:
        data = f"{format_timestamp(self.timestamp)}|{self.commit_id}"
        if self.tags:
            data += "|" + ",".join(self.tags)
        return data

    @classmethod
    def parse(cls, key: str, value: str, scheme: str) -> Result[VersionMetadata, KaeterError]:
        number = parse_version(key, scheme)
        if isinstance(number, Err):
            return number
        data = parse_release_data(value)
        if isinstance(data, Err):
            return data
        timestamp, commit_id, tags = data.value
        return Ok(cls(number=number.value, timestamp=timestamp, commit_id=commit_id, tags=tags))


# Source document bookkeeping


@dataclass(frozen=True, slots=True)
class _Span:
    start: int
    end: int

    @classmethod
    def of(cls, node: yaml.Node) -> _Span:
        return cls(node.start_mark.index, node.end_mark.index)


@dataclass(frozen=True, slots=True)
class _SourceEntry:
    key: _Span
    value: _Span
    indent: int
    key_text: str
    value_text: str


@dataclass(frozen=True, slots=True)
class _LedgerDocument:
    text: str
    entries: tuple[_SourceEntry, ...]
    versions_key: _Span
    versions_value: _Span | None
    versions_indent: int
    # False for flow (`{...}`) or empty mappings, which are rebuilt as a block.
    block: bool


def _render_scalar(value: str) -> str:
    dumped = yaml.safe_dump(value, default_flow_style=True, width=float("inf"), allow_unicode=True)
    return dumped.removesuffix("\n").removesuffix("\n...").rstrip("\n")


def _line_end(text: str, index: int) -> int:
    """Offset of the line break ending the line at ``index``, CR included for CRLF."""
    newline = text.find("\n", index)
    if newline == -1:
        return len(text)
    if newline > index and text[newline - 1] == "\r":
        return newline - 1
    return newline


def _newline_of(text: str) -> str:
    newline = text.find("\n")
    return "\r\n" if newline > 0 and text[newline - 1] == "\r" else "\n"


def _apply_edits(text: str, edits: list[tuple[int, int, str]]) -> str:
    for start, end, replacement in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


@dataclass(slots=True)
class Versions:
    """A module's release ledger.

    ``released_versions`` is append-only in normal operation; use
    ``add_release`` to extend it and ``save_to_file`` to persist.
    """

    id: str
    module_type: str
    versioning: str
    released_versions: list[VersionMetadata]
    annotations: dict[str, str] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    _document: _LedgerDocument | None = field(default=None, repr=False, compare=False)

    @property
    def scheme(self) -> VersioningScheme | None:
        return VersioningScheme.parse(self.versioning)

    def latest_release(self) -> VersionMetadata | None:
        return self.released_versions[-1] if self.released_versions else None

    def latest_published_release(self) -> VersionMetadata | None:
        """Latest entry that is not a pending autorelease."""
        for entry in reversed(self.released_versions):
            if not entry.is_autorelease:
                return entry
        return None

    def has_pending_autorelease(self) -> bool:
        latest = self.latest_release()
        return latest is not None and latest.is_autorelease

    def autorelease_entries(self) -> list[VersionMetadata]:
        return [entry for entry in self.released_versions if entry.is_autorelease]

    def find_release(self, version: str) -> VersionMetadata | None:
        for entry in self.released_versions:
            if str(entry.number) == version:
                return entry
        return None

    def add_release(
        self,
        ref_time: datetime,
        bump: Bump,
        user_version: str | None,
        commit_id: str,
        tags: list[str] | None = None,
    ) -> Result[VersionMetadata, KaeterError]:
        """Append the next release entry.

        ``user_version`` overrides the bump for SemVer, is required for
        AnyStringVer and rejected for CalVer. Versions and commit IDs must be
        unique within the ledger. The ledger is only changed in memory.
        """
        number = self._next_version(ref_time, bump, user_version, commit_id)
        if isinstance(number, Err):
            return number
        rendered = str(number.value)

        for existing in self.released_versions:
            if str(existing.number) == rendered:
                return Err(
                    KaeterError(
                        kind="validation",
                        message=f"version {rendered} already exists in the list of released versions",
                    )
                )
            if existing.commit_id == commit_id:
                return Err(
                    KaeterError(
                        kind="validation",
                        message=f"commit ref {commit_id} already exists in the list of released versions",
                    )
                )

        entry = VersionMetadata(
            number=number.value,
            timestamp=ref_time.replace(microsecond=0),
            commit_id=commit_id,
            tags=list(tags or []),
        )
        self.released_versions.append(entry)
        return Ok(entry)

    def _next_version(
        self,
        ref_time: datetime,
        bump: Bump,
        user_version: str | None,
        commit_id: str,
    ) -> Result[VersionIdentifier, KaeterError]:
        scheme = self.scheme
        if scheme is VersioningScheme.ANY_STRING and not user_version:
            return Err(
                KaeterError(
                    kind="validation",
                    message="a version is required when the versioning scheme is AnyStringVer",
                    hint="pass it with --version",
                )
            )
        if scheme is VersioningScheme.CALVER and user_version:
            return Err(KaeterError(kind="validation", message="cannot manually specify a version with CalVer"))
        if not commit_id:
            return Err(KaeterError(kind="validation", message="given commit ID is empty"))
        if not self.released_versions:
            return Err(
                KaeterError(
                    kind="validation",
                    message="ledger was not properly initialized: previous release list is empty",
                )
            )

        last = self.released_versions[-1].number
        match last:
            case VersionString():
                if not user_version or not VERSION_STRING_PATTERN.fullmatch(user_version):
                    return Err(
                        KaeterError(
                            kind="validation",
                            message=f"version does not match {VERSION_STRING_PATTERN.pattern}: {user_version!r}",
                        )
                    )
                return Ok(VersionString(user_version))
            case SemanticVersion():
                match scheme:
                    case VersioningScheme.SEMVER if user_version:
                        parsed = parse_semantic_version(user_version)
                        if isinstance(parsed, Err):
                            return parsed
                        return Ok(parsed.value)
                    case VersioningScheme.SEMVER:
                        return Ok(last.bump(bump))
                    case VersioningScheme.CALVER:
                        return Ok(last.next_calendar(ref_time))
                    case _:
                        return Err(
                            KaeterError(
                                kind="validation",
                                message=f"unknown versioning scheme: {self.versioning!r}",
                                hint="acceptable values are SemVer, CalVer and AnyStringVer",
                            )
                        )

    def marshal(self) -> str:
        """Serialize the ledger, keeping the source text of unchanged parts."""
        doc = self._document
        if doc is None:
            return self._render_new()

        current = [(str(v.number), v.release_data()) for v in self.released_versions]
        loaded = [(e.key_text, e.value_text) for e in doc.entries]
        if current == loaded:
            return doc.text
        if not doc.block or not current:
            return self._rebuild_versions(doc, current)

        edits: list[tuple[int, int, str]] = []
        for source, (key, value) in zip(doc.entries, current):
            if key != source.key_text:
                edits.append((source.key.start, source.key.end, _render_scalar(key)))
            if value != source.value_text:
                edits.append((source.value.start, source.value.end, _render_scalar(value)))

        kept = len(doc.entries)
        if len(current) > kept:
            last = doc.entries[-1]
            insert_at = _line_end(doc.text, last.value.end)
            newline = _newline_of(doc.text)
            lines = "".join(
                f"{newline}{' ' * last.indent}{_render_scalar(k)}: {_render_scalar(v)}" for k, v in current[kept:]
            )
            edits.append((insert_at, insert_at, lines))
        elif len(current) < kept:
            start = _line_end(doc.text, doc.entries[len(current) - 1].value.end)
            end = _line_end(doc.text, doc.entries[-1].value.end)
            edits.append((start, end, ""))

        return _apply_edits(doc.text, edits)

    def _rebuild_versions(self, doc: _LedgerDocument, current: list[tuple[str, str]]) -> str:
        text = doc.text
        colon = text.index(":", doc.versions_key.end)
        cut_start, cut_end = colon + 1, colon + 1
        if doc.versions_value is not None:
            cut_start, cut_end = doc.versions_value.start, doc.versions_value.end
        head = text[: colon + 1]
        rest = text[cut_end:]
        if not current:
            return head + " {}" + rest

        indent = " " * (doc.versions_indent + _NEW_MAPPING_INDENT)
        newline = _newline_of(text)
        lines = "".join(f"{newline}{indent}{_render_scalar(k)}: {_render_scalar(v)}" for k, v in current)
        line_end = _line_end(rest, 0)
        between = text[colon + 1 : cut_start]
        return head + (between + rest[:line_end]).rstrip(" \t") + lines + rest[line_end:]

    def _render_new(self) -> str:
        lines = [
            f"id: {_render_scalar(self.id)}",
            f"type: {_render_scalar(self.module_type)}",
            f"versioning: {_render_scalar(self.versioning)}",
        ]
        if self.released_versions:
            lines.append("versions:")
            indent = " " * _NEW_MAPPING_INDENT
            for entry in self.released_versions:
                lines.append(f"{indent}{_render_scalar(str(entry.number))}: {_render_scalar(entry.release_data())}")
        else:
            lines.append("versions: {}")
        if self.annotations:
            lines += ["metadata:", "  annotations:"]
            lines += [f"    {_render_scalar(k)}: {_render_scalar(v)}" for k, v in self.annotations.items()]
        if self.dependencies:
            lines.append("dependencies:")
            lines += [f"  - {_render_scalar(dep)}" for dep in self.dependencies]
        return "\n".join(lines) + "\n"

    def save_to_file(self, path: Path) -> Result[None, KaeterError]:
        try:
            atomic_write_text(path, self.marshal())
        except OSError as e:
            return Err(KaeterError(kind="io", message=f"unable to write {path}: {e}"))
        return Ok(None)


def parse_versions(text: str) -> Result[Versions, KaeterError]:
    """Parse ledger text, retaining it for comment-preserving writes."""
    try:
        root = yaml.compose(text, Loader=yaml.SafeLoader)
        data: object = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return Err(KaeterError(kind="validation", message="invalid ledger YAML", hint=str(e)))

    if not isinstance(root, yaml.MappingNode) or not is_str_dict(data):
        return Err(KaeterError(kind="validation", message="ledger root must be a mapping"))

    versions_pair = next(
        ((k, v) for k, v in root.value if isinstance(k, yaml.ScalarNode) and k.value == "versions"),
        None,
    )
    if versions_pair is None:
        return Err(KaeterError(kind="validation", message="ledger has no versions mapping"))
    key_node, value_node = versions_pair

    scheme = get_str(data, "versioning") or ""
    released: list[VersionMetadata] = []
    source: list[_SourceEntry] = []
    versions_value: _Span | None = None
    block = False

    if isinstance(value_node, yaml.MappingNode):
        block = not value_node.flow_style and bool(value_node.value)
        if not block:
            versions_value = _Span.of(value_node)
        for k, v in value_node.value:
            if not isinstance(k, yaml.ScalarNode) or not isinstance(v, yaml.ScalarNode):
                return Err(KaeterError(kind="validation", message="versions entries must be plain key: value pairs"))
            parsed = VersionMetadata.parse(k.value, v.value, scheme)
            if isinstance(parsed, Err):
                return Err(parsed.error.with_context(f"version {k.value}"))
            entry = parsed.value
            released.append(entry)
            source.append(
                _SourceEntry(
                    key=_Span.of(k),
                    value=_Span.of(v),
                    indent=k.start_mark.column,
                    key_text=str(entry.number),
                    value_text=entry.release_data(),
                )
            )
    elif isinstance(value_node, yaml.ScalarNode) and value_node.tag == _NULL_TAG:
        if value_node.value:
            versions_value = _Span.of(value_node)
    else:
        return Err(KaeterError(kind="validation", message="versions must be a mapping"))

    metadata = get_table(data, "metadata") or {}
    document = _LedgerDocument(
        text=text,
        entries=tuple(source),
        versions_key=_Span.of(key_node),
        versions_value=versions_value,
        versions_indent=key_node.start_mark.column,
        block=block,
    )
    return Ok(
        Versions(
            id=get_str(data, "id") or "",
            module_type=get_str(data, "type") or "",
            versioning=scheme,
            released_versions=released,
            annotations=get_str_map(metadata, "annotations"),
            dependencies=get_str_list(data, "dependencies"),
            _document=document,
        )
    )


def read_versions_file(path: Path) -> Result[Versions, KaeterError]:
    try:
        text = path.read_bytes().decode("utf-8")
    except FileNotFoundError:
        return Err(KaeterError(kind="not_found", message=f"ledger not found: {path}"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(KaeterError(kind="io", message=f"unable to read {path}: {e}"))
    return parse_versions(text).map_err(lambda e: e.with_context(str(path)))


def get_versions_file_path(module_path: Path) -> Result[Path, KaeterError]:
    """Resolve a module directory (or ledger path) to its ledger file.

    A directory resolves to the single ledger found below it, or to the one
    directly inside it when several are found. Without any ledger the default
    ``versions.yaml`` path is returned.
    """
    path = module_path.absolute()
    if not path.exists():
        return Err(KaeterError(kind="not_found", message=f"no such file or directory: {module_path}"))
    if not path.is_dir():
        return Ok(path)

    found = find_versions_files(path)
    error = join_errors(found.errors)
    if error is not None:
        return Err(error)
    if len(found.paths) == 1:
        return Ok(found.paths[0])
    if len(found.paths) > 1:
        for candidate in found.paths:
            if candidate.parent == path:
                return Ok(candidate)
        return Err(KaeterError(kind="validation", message=f"multiple ledger files in: {module_path}"))
    return Ok(path / DEFAULT_LEDGER_NAME)
