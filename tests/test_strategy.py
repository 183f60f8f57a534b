"""Tests for the artifact store and the generator strategies."""

import multiprocessing
import sys
from pathlib import Path

import pytest
import yaml

from mapping_svc.errors import GenerationError, MappingInconsistencyError
from mapping_svc.metadata.generator import ClassMetadataGenerator
from mapping_svc.metadata.strategy import (
    AlwaysGenerateStrategy,
    ArtifactStore,
    AutoGenerate,
    ConditionalFileWriterStrategy,
    NeverGenerateStrategy,
    create_strategy,
)


EMPLOYEE = "app.models.Employee"
PERSON = "app.models.Person"
AUDITABLE = "app.models.Auditable"


def _try_lock(lock_path):
    """Exit 1 if another process holds the lock on lock_path, 0 otherwise."""
    import fcntl

    with open(lock_path, "a", encoding="utf-8") as fh:
        try:
            fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            sys.exit(1)
        fcntl.flock(fh, fcntl.LOCK_UN)
    sys.exit(0)


def _write_when_locked(directory, class_name):
    store = ArtifactStore(directory)
    with store.locked(class_name):
        store.write(class_name, {"class_name": class_name, "fingerprint": "from-child"})


# =============================================================================
# Artifact Store
# =============================================================================

class TestArtifactStore:
    """Reading and writing artifact files."""

    def test_path_for(self, store, artifact_dir):
        assert store.path_for(EMPLOYEE) == artifact_dir / "app.models.Employee.yaml"
        assert store.path_for("a/b c").name == "a_b_c.yaml"

    def test_write_then_read(self, store):
        payload = {"class_name": EMPLOYEE, "kind": "entity", "fingerprint": "abc"}

        written = store.write(EMPLOYEE, payload)
        read = store.read(EMPLOYEE)

        assert written.path == store.path_for(EMPLOYEE)
        assert read.fingerprint == "abc"
        assert read.payload == payload

    def test_read_missing(self, store):
        assert store.read(EMPLOYEE) is None

    def test_read_invalid_yaml(self, store, artifact_dir):
        artifact_dir.mkdir(parents=True)
        store.path_for(EMPLOYEE).write_text("key: [unclosed", encoding="utf-8")
        assert store.read(EMPLOYEE) is None

    def test_read_non_mapping(self, store, artifact_dir):
        artifact_dir.mkdir(parents=True)
        store.path_for(EMPLOYEE).write_text("- just\n- a list\n", encoding="utf-8")
        assert store.read(EMPLOYEE) is None

    def test_read_other_class(self, store):
        store.write(EMPLOYEE, {"class_name": PERSON, "fingerprint": "abc"})
        assert store.read(EMPLOYEE) is None

    def test_read_without_fingerprint(self, store, artifact_dir):
        artifact_dir.mkdir(parents=True)
        store.path_for(EMPLOYEE).write_text(yaml.safe_dump({"class_name": EMPLOYEE}), encoding="utf-8")
        assert store.read(EMPLOYEE) is None

    def test_write_leaves_no_temp_files(self, store, artifact_dir):
        for i in range(3):
            store.write(EMPLOYEE, {"class_name": EMPLOYEE, "fingerprint": str(i)})

        assert not list(artifact_dir.glob("*.tmp"))
        assert store.read(EMPLOYEE).fingerprint == "2"

    def test_failed_rename_removes_temp_file(self, store, artifact_dir, monkeypatch):
        def fail_replace(self, target):
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", fail_replace)

        with pytest.raises(OSError, match="disk full"):
            store.write(EMPLOYEE, {"class_name": EMPLOYEE, "fingerprint": "abc"})

        assert not list(artifact_dir.glob("*.tmp"))
        assert not store.path_for(EMPLOYEE).exists()

    def test_failed_rename_is_generation_error(self, make_factory, artifact_dir, monkeypatch):
        def fail_replace(self, target):
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", fail_replace)
        factory, _ = make_factory(policy="always")

        with pytest.raises(GenerationError):
            factory.get_metadata_for(AUDITABLE)
        assert not list(artifact_dir.glob("*.tmp"))

    def test_locked_creates_lock_file(self, store):
        with store.locked(EMPLOYEE):
            assert store.path_for(EMPLOYEE).with_suffix(".lock").exists()

    def test_lock_excludes_other_processes(self, store):
        pytest.importorskip("fcntl")
        lock_path = str(store.path_for(EMPLOYEE).with_suffix(".lock"))
        ctx = multiprocessing.get_context("fork")

        with store.locked(EMPLOYEE):
            held = ctx.Process(target=_try_lock, args=(lock_path,))
            held.start()
            held.join(10)

        released = ctx.Process(target=_try_lock, args=(lock_path,))
        released.start()
        released.join(10)

        assert held.exitcode == 1
        assert released.exitcode == 0

    def test_locked_waits_for_other_process(self, store, artifact_dir):
        pytest.importorskip("fcntl")
        ctx = multiprocessing.get_context("fork")

        with store.locked(EMPLOYEE):
            waiter = ctx.Process(target=_write_when_locked, args=(str(artifact_dir), EMPLOYEE))
            waiter.start()
            waiter.join(0.5)
            assert waiter.is_alive()
            assert store.read(EMPLOYEE) is None

        waiter.join(10)
        assert waiter.exitcode == 0
        assert store.read(EMPLOYEE).fingerprint == "from-child"


# =============================================================================
# Strategy Selection
# =============================================================================

class TestCreateStrategy:

    @pytest.mark.parametrize("policy,expected", [
        ("never", NeverGenerateStrategy),
        ("always", AlwaysGenerateStrategy),
        ("if-missing", ConditionalFileWriterStrategy),
        (AutoGenerate.IF_MISSING, ConditionalFileWriterStrategy),
    ])
    def test_policy(self, registry, store, policy, expected):
        strategy = create_strategy(policy, ClassMetadataGenerator(registry), store)
        assert type(strategy) is expected
        assert strategy.policy is AutoGenerate(policy)

    def test_unknown_policy(self, registry, store):
        with pytest.raises(ValueError):
            create_strategy("sometimes", ClassMetadataGenerator(registry), store)


# =============================================================================
# Policies
# =============================================================================

class TestIfMissing:
    """Artifacts are reused while their fingerprint matches."""

    def test_writes_missing_artifacts(self, make_factory, store):
        factory, _ = make_factory()

        factory.get_metadata_for(EMPLOYEE)

        for name in (AUDITABLE, PERSON, EMPLOYEE):
            artifact = store.read(name)
            assert artifact is not None
            assert artifact.payload["class_name"] == name
        assert store.read(EMPLOYEE).parent_class_name == PERSON

    def test_reuses_fresh_artifacts(self, make_factory):
        first, _ = make_factory()
        expected = first.get_metadata_for(EMPLOYEE).to_dict()

        second, generator = make_factory()
        metadata = second.get_metadata_for(EMPLOYEE)

        assert not generator.calls
        assert metadata.to_dict() == expected

    def test_regenerates_stale_class_and_descendants(self, make_factory, mapping_data):
        first, _ = make_factory()
        first.get_metadata_for(EMPLOYEE)

        mapping_data[PERSON]["fields"]["email"] = {"type": "string"}
        second, generator = make_factory(mapping_data)
        employee = second.get_metadata_for(EMPLOYEE)

        assert generator.calls == {PERSON: 1, EMPLOYEE: 1}
        assert employee.has_field("email")
        assert employee.fields["email"].declared_in == PERSON

    def test_regenerates_corrupt_artifact(self, make_factory, store):
        first, _ = make_factory()
        first.get_metadata_for(PERSON)
        store.path_for(PERSON).write_text("key: [unclosed", encoding="utf-8")

        second, generator = make_factory()
        person = second.get_metadata_for(PERSON)

        assert generator.calls == {PERSON: 1}
        assert person.table_name == "people"
        assert store.read(PERSON) is not None


class TestAlways:
    """Artifacts are rewritten on every definition build."""

    def test_regenerates_every_factory(self, make_factory):
        first, first_generator = make_factory(policy="always")
        first.get_metadata_for(EMPLOYEE)

        second, second_generator = make_factory(policy="always")
        second.get_metadata_for(EMPLOYEE)

        assert first_generator.calls == second_generator.calls == {AUDITABLE: 1, PERSON: 1, EMPLOYEE: 1}

    def test_cache_still_applies_within_factory(self, make_factory):
        factory, generator = make_factory(policy="always")
        factory.get_metadata_for(EMPLOYEE)
        factory.get_metadata_for(EMPLOYEE)
        assert generator.calls[EMPLOYEE] == 1


class TestNever:
    """Artifacts must already exist."""

    def test_missing_artifact(self, make_factory):
        factory, generator = make_factory(policy="never")

        with pytest.raises(GenerationError, match="auto-generation is disabled") as exc_info:
            factory.get_metadata_for(EMPLOYEE)

        assert exc_info.value.class_name == AUDITABLE
        assert not generator.calls

    def test_uses_prebuilt_artifacts(self, make_factory):
        warm, _ = make_factory(policy="always")
        expected = warm.get_metadata_for(EMPLOYEE).to_dict()

        factory, generator = make_factory(policy="never")
        metadata = factory.get_metadata_for(EMPLOYEE)

        assert not generator.calls
        assert metadata.to_dict() == expected
        assert metadata.parent is factory.get_metadata_for(PERSON)

    def test_corrupt_artifact(self, make_factory, store):
        warm, _ = make_factory(policy="always")
        warm.get_metadata_for(PERSON)
        store.path_for(PERSON).write_text("key: [unclosed", encoding="utf-8")

        factory, _ = make_factory(policy="never")
        with pytest.raises(GenerationError):
            factory.get_metadata_for(PERSON)

    @pytest.mark.parametrize("overrides", [
        {"fields": [{"name": "id"}]},
        {"associations": [{"name": "owner", "type": "many_to_one"}]},
        {"inheritance": "diagonal"},
        {"fields": "id"},
    ])
    def test_malformed_artifact(self, make_factory, store, overrides):
        payload = {"class_name": "shop.Tag", "kind": "entity", "parent": None, "fingerprint": "x"}
        payload.update(overrides)
        store.write("shop.Tag", payload)

        factory, _ = make_factory({"shop.Tag": {"fields": {"id": {"id": True}}}}, policy="never")
        with pytest.raises(GenerationError, match="malformed") as exc_info:
            factory.get_metadata_for("shop.Tag")

        assert exc_info.value.class_name == "shop.Tag"
        assert not factory.has_metadata_for("shop.Tag")

    def test_artifact_for_other_parent(self, make_factory, mapping_data):
        warm, _ = make_factory(policy="always")
        warm.get_metadata_for(EMPLOYEE)

        mapping_data[EMPLOYEE]["extends"] = AUDITABLE
        factory, _ = make_factory(mapping_data, policy="never")

        with pytest.raises(MappingInconsistencyError, match="resolved parent"):
            factory.get_metadata_for(EMPLOYEE)


class TestFingerprint:

    def test_stable(self, registry):
        generator = ClassMetadataGenerator(registry)
        assert generator.fingerprint(AUDITABLE, None) == generator.fingerprint(AUDITABLE, None)

    def test_changes_with_parent(self, factory, registry):
        generator = ClassMetadataGenerator(registry)
        person = factory.get_metadata_for(PERSON)

        assert generator.fingerprint(EMPLOYEE, person) != generator.fingerprint(EMPLOYEE, None)

    def test_payload_carries_fingerprint(self, factory, registry):
        generator = ClassMetadataGenerator(registry)
        auditable = factory.get_metadata_for(AUDITABLE)

        payload = generator.generate(PERSON, auditable)
        assert payload["fingerprint"] == generator.fingerprint(PERSON, auditable)
