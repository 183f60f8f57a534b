"""Generator strategies - when to (re)materialize a class's generated artifact."""

from __future__ import annotations

import logging
import re
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Generator

import yaml

from ..errors import GenerationError
from .generator import ClassMetadataGenerator
from .types import ClassMetadata, GeneratedArtifact

try:
    import fcntl as _fcntl
    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False
    logging.getLogger(__name__).warning(
        "fcntl not available (non-POSIX). Artifact file locking is disabled; "
        "do not share an artifact directory between processes on this platform."
    )

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


class AutoGenerate(str, Enum):
    """Generated-artifact policy."""
    NEVER = "never"            # Artifacts are produced before deployment
    ALWAYS = "always"          # Regenerate on every build; development only
    IF_MISSING = "if-missing"  # Regenerate only when absent or stale


class ArtifactStore:
    """
    Directory of generated artifacts, one YAML file per class.

    Writes land in a temporary file next to the target and are renamed into
    place, so readers never see a partial artifact. ``locked`` serializes
    writers across processes with an advisory lock file.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def path_for(self, class_name: str) -> Path:
        return self.directory / f"{_UNSAFE_FILENAME_CHARS.sub('_', class_name)}.yaml"

    def read(self, class_name: str) -> GeneratedArtifact | None:
        """Read an artifact; None when missing, unreadable or written for another class."""
        path = self.path_for(class_name)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Unreadable artifact {path}: {e}")
            return None

        if not isinstance(payload, dict) or payload.get("class_name") != class_name or "fingerprint" not in payload:
            logger.warning(f"Artifact {path} does not describe {class_name}")
            return None

        return GeneratedArtifact(
            class_name=class_name,
            fingerprint=payload["fingerprint"],
            payload=payload,
            path=path,
        )

    def write(self, class_name: str, payload: dict[str, Any]) -> GeneratedArtifact:
        path = self.path_for(class_name)
        path.parent.mkdir(parents=True, exist_ok=True)

        content = yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=path.parent,
                delete=False,
                prefix=f"{path.name}.",
                suffix=".tmp",
            ) as fh:
                tmp_path = Path(fh.name)
                fh.write(content)
            tmp_path.replace(path)
        except BaseException:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise

        logger.info(f"Wrote metadata artifact for {class_name} to {path}")
        return GeneratedArtifact(
            class_name=class_name,
            fingerprint=payload["fingerprint"],
            payload=payload,
            path=path,
        )

    @contextmanager
    def locked(self, class_name: str) -> Generator[None, None, None]:
        """Hold an exclusive lock for one class's artifact (POSIX only, no-op elsewhere)."""
        lock_path = self.path_for(class_name).with_suffix(".lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(lock_path, "a", encoding="utf-8") as fh:
            if _HAS_FCNTL:
                _fcntl.flock(fh, _fcntl.LOCK_EX)
            try:
                yield
            finally:
                if _HAS_FCNTL:
                    _fcntl.flock(fh, _fcntl.LOCK_UN)


class ClassMetadataGeneratorStrategy(ABC):
    """Produces (or locates) the generated artifact backing a class's definition."""

    policy: AutoGenerate

    def __init__(self, generator: ClassMetadataGenerator, store: ArtifactStore):
        self.generator = generator
        self.store = store

    @abstractmethod
    def generate(self, class_name: str, parent: ClassMetadata | None) -> GeneratedArtifact:
        """
        Get the artifact for a class.

        Raises:
            GenerationError: If the artifact cannot be produced or read
            MappingInconsistencyError: If the mapping itself is invalid
        """
        ...

    def _write(self, class_name: str, parent: ClassMetadata | None) -> GeneratedArtifact:
        payload = self.generator.generate(class_name, parent)
        try:
            return self.store.write(class_name, payload)
        except (OSError, yaml.YAMLError) as e:
            raise GenerationError(class_name, f"cannot write artifact: {e}") from e


class NeverGenerateStrategy(ClassMetadataGeneratorStrategy):
    """Trusts artifacts produced ahead of time; never writes."""
    policy = AutoGenerate.NEVER

    def generate(self, class_name: str, parent: ClassMetadata | None) -> GeneratedArtifact:
        artifact = self.store.read(class_name)
        if artifact is None:
            raise GenerationError(
                class_name,
                f"no usable artifact at {self.store.path_for(class_name)} and auto-generation is disabled",
            )
        return artifact


class AlwaysGenerateStrategy(ClassMetadataGeneratorStrategy):
    """Regenerates and rewrites the artifact on every call."""
    policy = AutoGenerate.ALWAYS

    def generate(self, class_name: str, parent: ClassMetadata | None) -> GeneratedArtifact:
        with self.store.locked(class_name):
            return self._write(class_name, parent)


class ConditionalFileWriterStrategy(ClassMetadataGeneratorStrategy):
    """
    Reuses a cached artifact while it matches the current mapping.

    The fingerprint covers the class's own mapping and its parent's
    artifact, so editing a base class invalidates every descendant.
    """
    policy = AutoGenerate.IF_MISSING

    def generate(self, class_name: str, parent: ClassMetadata | None) -> GeneratedArtifact:
        fingerprint = self.generator.fingerprint(class_name, parent)

        artifact = self.store.read(class_name)
        if artifact is not None and artifact.fingerprint == fingerprint:
            return artifact

        with self.store.locked(class_name):
            # Another process may have written it while we waited
            artifact = self.store.read(class_name)
            if artifact is not None and artifact.fingerprint == fingerprint:
                return artifact
            if artifact is not None:
                logger.info(f"Artifact for {class_name} is stale, regenerating")
            return self._write(class_name, parent)


STRATEGY_TYPES: dict[AutoGenerate, type[ClassMetadataGeneratorStrategy]] = {
    AutoGenerate.NEVER: NeverGenerateStrategy,
    AutoGenerate.ALWAYS: AlwaysGenerateStrategy,
    AutoGenerate.IF_MISSING: ConditionalFileWriterStrategy,
}


def create_strategy(
    policy: AutoGenerate | str,
    generator: ClassMetadataGenerator,
    store: ArtifactStore,
) -> ClassMetadataGeneratorStrategy:
    """Build the strategy for a policy value (``never``, ``always`` or ``if-missing``)."""
    return STRATEGY_TYPES[AutoGenerate(policy)](generator, store)
