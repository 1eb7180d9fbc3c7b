"""Unit tests for config hash governance."""

from qualitylab.clients.state_store import FileStateStore, MemoryStateStore
from qualitylab.config.settings import QualityLabConfig
from qualitylab.services.governance import (
    compute_config_hash,
    evaluate_governance,
    read_previous_hash,
    write_config_hash,
)


def test_no_previous_hash_before_first_write(repo):
    assert read_previous_hash(repo) is None


def test_written_hash_is_read_back(repo):
    write_config_hash(repo, "abc123")
    assert read_previous_hash(repo) == "abc123"
    assert FileStateStore(repo).config_hash_path.read_text() == "abc123\n"


def test_blank_hash_file_counts_as_absent(repo):
    store = FileStateStore(repo)
    store.config_hash_path.parent.mkdir()
    store.config_hash_path.write_text("  \n")
    assert read_previous_hash(store) is None


def test_hash_is_idempotent(write_config):
    path = write_config("packs: [api@1]\n")
    config = QualityLabConfig(packs=["api@1"])
    assert compute_config_hash(config, path) == compute_config_hash(config, path)


def test_one_byte_change_changes_hash(write_config):
    config = QualityLabConfig(packs=["api@1"])
    before = compute_config_hash(config, write_config("packs: [api@1]\n"))
    after = compute_config_hash(config, write_config("packs: [api@2]\n"))
    assert before != after


def test_formatting_change_changes_hash(write_config):
    config = QualityLabConfig(packs=["api@1"])
    before = compute_config_hash(config, write_config("packs: [api@1]\n"))
    after = compute_config_hash(config, write_config("# team policy\npacks: [api@1]\n"))
    assert before != after


def test_without_file_hash_uses_effective_config(tmp_path):
    default = compute_config_hash(QualityLabConfig())
    assert default == compute_config_hash(QualityLabConfig(), tmp_path / "missing.yml")
    assert default != compute_config_hash(QualityLabConfig(checks=["sca"]))
    assert len(default) == 64


def test_first_run_is_not_a_change():
    store = MemoryStateStore()
    result = evaluate_governance(store, QualityLabConfig())
    assert result.previous is None
    assert result.changed is False
    assert store.config_hash == result.current


def test_same_config_twice_is_not_a_change():
    store = MemoryStateStore()
    evaluate_governance(store, QualityLabConfig(packs=["api@1"]))
    result = evaluate_governance(store, QualityLabConfig(packs=["api@1"]))
    assert result.changed is False
    assert result.previous == result.current


def test_edited_config_is_a_change():
    store = MemoryStateStore()
    first = evaluate_governance(store, QualityLabConfig(packs=["api@1"]))
    second = evaluate_governance(store, QualityLabConfig(packs=["web-saas@1"]))
    assert second.changed is True
    assert second.previous == first.current
    assert second.to_dict() == {"current": second.current, "previous": first.current, "changed": True}


def test_unwritable_state_dir_does_not_fail_the_run(repo):
    (repo / ".qualitylab").write_text("not a directory")
    store = FileStateStore(repo)

    assert store.write_config_hash("abc") is False
    write_config_hash(repo, "abc")
    result = evaluate_governance(store, QualityLabConfig())

    assert result.previous is None
    assert result.changed is False
    assert (repo / ".qualitylab").read_text() == "not a directory"
