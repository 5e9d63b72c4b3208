"""Locate a chart and read its defaults, schema and subchart defaults.

Charts come from a local directory, a packaged ``.tgz`` archive, or a
repository / OCI reference pulled with ``helm pull``. Archives are read in
memory; nothing is unpacked to disk.
"""

from __future__ import annotations

import io
import logging
import os
import re
import shutil
import subprocess
import tarfile
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ChartError, DocumentError
from .tree import Mapping, parse_mapping

logger = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
VALUES_FILES = ("values.yaml", "values.yml")
SCHEMA_FILE = "values.schema.json"
ARCHIVE_SUFFIXES = (".tgz", ".tar.gz")
DEBUG_ENV = "VALUES_LINT_DEBUG"

_WANTED_FILES = {CHART_FILE, SCHEMA_FILE, *VALUES_FILES}

_URL_CREDS_RE = re.compile(r"([a-zA-Z][a-zA-Z0-9+.-]*://)([^/\s@]+)@")
_SECRET_QS_RE = re.compile(
    r"(?i)(\b(access_token|token|password|passwd|pwd|secret|apikey|api_key)\b=)([^&\s]+)"
)


@dataclass
class ResolvedChart:
    name: str
    version: str
    defaults: Mapping
    schema_bytes: bytes | None = None
    subchart_defaults: dict[str, Mapping] = field(default_factory=dict)


def debug_enabled() -> bool:
    value = os.environ.get(DEBUG_ENV, "").strip()
    return value not in ("", "0") and value.lower() != "false"


def redact_sensitive(text: str, max_len: int = 2000) -> str:
    """Mask URL credentials and secret-looking query parameters."""
    redacted = _URL_CREDS_RE.sub(r"\1REDACTED@", text)
    redacted = _SECRET_QS_RE.sub(r"\1REDACTED", redacted)
    if len(redacted) > max_len:
        return redacted[:max_len] + "\n... (truncated)"
    return redacted


def is_local_path(ref: str) -> bool:
    if ref.startswith((".", "/", "~")):
        return True
    return Path(ref).exists()


def _wanted(rel_path: str) -> bool:
    name = rel_path.rsplit("/", 1)[-1]
    if name in _WANTED_FILES:
        return True
    return rel_path.startswith("charts/") and name.endswith(ARCHIVE_SUFFIXES)


def _read_dir(root: Path) -> dict[str, bytes]:
    files: dict[str, bytes] = {}
    try:
        for path in sorted(root.rglob("*")):
            rel_path = path.relative_to(root).as_posix()
            if path.is_file() and _wanted(rel_path):
                files[rel_path] = path.read_bytes()
    except OSError as exc:
        raise ChartError(f"loading chart from {root}: {exc}") from exc
    return files


def _read_archive(data: bytes, source: str) -> dict[str, bytes]:
    """Read chart files from a packaged chart, dropping the top directory."""
    files: dict[str, bytes] = {}
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
            for member in archive.getmembers():
                if not member.isfile():
                    continue
                _, _, rel_path = member.name.lstrip("./").partition("/")
                if not rel_path or not _wanted(rel_path):
                    continue
                handle = archive.extractfile(member)
                if handle is not None:
                    files[rel_path] = handle.read()
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise ChartError(f"reading chart archive {source}: {exc}") from exc
    return files


def _chart_metadata(files: dict[str, bytes], source: str) -> dict[str, Any]:
    raw = files.get(CHART_FILE)
    if raw is None:
        raise ChartError(f"loading chart from {source}: {CHART_FILE} file is missing")
    try:
        metadata = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ChartError(f"parsing {source}/{CHART_FILE}: {exc}") from exc
    if not isinstance(metadata, dict):
        raise ChartError(f"parsing {source}/{CHART_FILE}: expected a mapping")
    return metadata


def _defaults(files: dict[str, bytes], source: str) -> Mapping:
    for name in VALUES_FILES:
        if name in files:
            return parse_mapping(files[name], source=f"{source}/{name}")
    return Mapping()


def _subchart_sources(files: dict[str, bytes], source: str) -> list[tuple[str, dict[str, bytes]]]:
    unpacked: dict[str, dict[str, bytes]] = {}
    sources: list[tuple[str, dict[str, bytes]]] = []
    for rel_path, data in files.items():
        if not rel_path.startswith("charts/"):
            continue
        rest = rel_path[len("charts/"):]
        directory, sep, inner = rest.partition("/")
        if sep:
            unpacked.setdefault(directory, {})[inner] = data
        elif rest.endswith(ARCHIVE_SUFFIXES):
            label = f"{source}/charts/{rest}"
            try:
                sources.append((label, _read_archive(data, label)))
            except ChartError as exc:
                logger.warning("skipping subchart: %s", exc)
    sources.extend((f"{source}/charts/{name}", sub_files) for name, sub_files in sorted(unpacked.items()))
    return sources


def _dependency_aliases(metadata: dict[str, Any]) -> dict[str, list[str | None]]:
    """Chart name -> how each dependency entry exposes it (alias or None)."""
    aliases: dict[str, list[str | None]] = {}
    dependencies = metadata.get("dependencies")
    if not isinstance(dependencies, list):
        return aliases
    for dep in dependencies:
        if isinstance(dep, dict) and dep.get("name"):
            alias = dep.get("alias")
            aliases.setdefault(str(dep["name"]), []).append(str(alias) if alias else None)
    return aliases


def build_resolved(files: dict[str, bytes], source: str) -> ResolvedChart:
    metadata = _chart_metadata(files, source)
    try:
        defaults = _defaults(files, source)
    except DocumentError as exc:
        raise ChartError(str(exc)) from exc

    resolved = ResolvedChart(
        name=str(metadata.get("name") or ""),
        version=str(metadata.get("version") or ""),
        defaults=defaults,
        schema_bytes=files.get(SCHEMA_FILE),
    )

    aliases = _dependency_aliases(metadata)
    for label, sub_files in _subchart_sources(files, source):
        try:
            sub_metadata = _chart_metadata(sub_files, label)
            sub_defaults = _defaults(sub_files, label)
        except (ChartError, DocumentError) as exc:
            logger.warning("skipping subchart %s: %s", label, exc)
            continue

        name = str(sub_metadata.get("name") or label.rsplit("/", 1)[-1])
        exposed = aliases.get(name) or [None]
        for alias in exposed:
            resolved.subchart_defaults[alias or name] = sub_defaults
        logger.debug("subchart %s registered as %s", name, ", ".join(a or name for a in exposed))

    return resolved


def load_local(ref: str) -> ResolvedChart:
    path = Path(ref).expanduser()
    if path.is_dir():
        logger.debug("loading chart directory %s", path)
        return build_resolved(_read_dir(path), str(path))
    if path.is_file():
        logger.debug("loading chart archive %s", path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ChartError(f"loading chart from {ref}: {exc}") from exc
        return build_resolved(_read_archive(data, str(path)), str(path))
    raise ChartError(f"loading chart from {ref}: no such file or directory")


def pull_remote(chart_ref: str, version: str | None = None, debug: bool | None = None) -> ResolvedChart:
    """Pull a chart with ``helm pull`` and read the downloaded archive."""
    debug = debug_enabled() if debug is None else debug
    helm = shutil.which("helm")
    if helm is None:
        raise ChartError(f"pulling chart {chart_ref}: helm executable not found on PATH")

    temp_dir = Path(tempfile.mkdtemp(prefix="values-lint-"))
    try:
        cmd = [helm, "pull", chart_ref, "--destination", str(temp_dir)]
        if version:
            cmd.extend(["--version", version])
        logger.debug("running %s", " ".join(cmd))
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        if result.returncode != 0:
            message = f"pulling chart {chart_ref}: helm exited with status {result.returncode}"
            output = f"{result.stdout}{result.stderr}".strip()
            # helm output can carry repository URLs and credentials.
            if debug and output:
                message += "\n" + redact_sensitive(output)
            raise ChartError(message)

        archives = sorted(temp_dir.glob("*.tgz"))
        if not archives:
            raise ChartError(f"pulling chart {chart_ref}: helm produced no chart archive")
        data = archives[0].read_bytes()
    except OSError as exc:
        raise ChartError(f"pulling chart {chart_ref}: {exc}") from exc
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    return build_resolved(_read_archive(data, chart_ref), chart_ref)


def resolve(chart_ref: str, version: str | None = None, debug: bool | None = None) -> ResolvedChart:
    """Load a chart from a local path or pull it from a repository."""
    if is_local_path(chart_ref):
        return load_local(chart_ref)
    return pull_remote(chart_ref, version, debug)
