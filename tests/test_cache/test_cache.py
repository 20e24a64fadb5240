"""
Tests for the cache store, validator and builder.

Covers:
- CacheStore (save, load, load_part, missing/malformed documents, clear)
- CacheValidator (valid after build, invalid after a new commit, fail-closed)
- CacheBuilder (idempotent rebuild, absent working tree)
"""

import json
from pathlib import Path

import pytest

from conftest import commit_files, requires_git
from repo_explorer.config.schema import AppConfig
from repo_explorer.indexer.builder import CacheBuilder
from repo_explorer.indexer.cache import PART_DOCUMENTS, CacheStore, CacheValidator, RepoCache
from repo_explorer.indexer.metadata import RepoMetadata, RepoStats
from repo_explorer.indexer.structure import CodeStructureIndex
from repo_explorer.indexer.tokens import Posting, SearchIndex
from repo_explorer.indexer.tree import FileEntry, FileStructure
from repo_explorer.repos.registry import RepositoryNotFoundError, RepositoryRegistry


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def store(app_config: AppConfig) -> CacheStore:
    return CacheStore(app_config.cache_root)


@pytest.fixture
def registry(app_config: AppConfig) -> RepositoryRegistry:
    return RepositoryRegistry(app_config)


@pytest.fixture
def validator(store: CacheStore, registry: RepositoryRegistry) -> CacheValidator:
    return CacheValidator(store, registry)


@pytest.fixture
def builder(store: CacheStore, registry: RepositoryRegistry) -> CacheBuilder:
    return CacheBuilder(registry, store)


@pytest.fixture
def sample_cache() -> RepoCache:
    structure = FileStructure()
    structure.add_file(
        "src/a.ts",
        FileEntry(size=4, last_modified="2024-01-01T00:00:00+00:00", language="TypeScript"),
    )
    return RepoCache(
        metadata=RepoMetadata(
            revision_id="abc123",
            scanned_at="2024-01-01T00:00:00+00:00",
            stats=RepoStats(
                total_files=1,
                total_bytes=4,
                language_counts={"TypeScript": 1},
                directory_count=1,
            ),
        ),
        structure=structure,
        search_index=SearchIndex(
            exact_terms={"loadData": [Posting("src/a.ts", 1, [1])]},
            terms={"load": [Posting("src/a.ts", 1, [1])]},
        ),
        code_structure=CodeStructureIndex(),
    )


# ── Tests: CacheStore ─────────────────────────────────────────────────────


class TestCacheStore:
    def test_save_writes_four_documents(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)

        names = sorted(p.name for p in store.cache_dir("web", "app").iterdir())
        assert names == ["codeStructure.json", "metadata.json", "searchIndex.json", "structure.json"]

    def test_documents_are_json(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)

        data = json.loads(store.document_path("web", "app", "metadata").read_text())
        assert data["revision_id"] == "abc123"
        assert data["stats"]["total_files"] == 1

    def test_load_returns_saved_cache(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)

        loaded = store.load("web", "app")

        assert loaded == sample_cache

    def test_load_part(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)

        index = store.load_part("web", "app", "search_index")

        assert isinstance(index, SearchIndex)
        assert index.exact_terms["loadData"][0].positions == [1]

    def test_load_absent_cache(self, store: CacheStore) -> None:
        assert store.load("web", "app") is None
        assert store.load_part("web", "app", "metadata") is None

    def test_missing_document_makes_cache_unusable(
        self, store: CacheStore, sample_cache: RepoCache
    ) -> None:
        store.save("web", "app", sample_cache)
        store.document_path("web", "app", "structure").unlink()

        assert store.load("web", "app") is None
        assert store.load_part("web", "app", "metadata") is not None

    def test_malformed_document_returns_none(
        self, store: CacheStore, sample_cache: RepoCache
    ) -> None:
        store.save("web", "app", sample_cache)
        store.document_path("web", "app", "search_index").write_text("{broken")

        assert store.load_part("web", "app", "search_index") is None
        assert store.load("web", "app") is None

    def test_wrong_shape_returns_none(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)
        store.document_path("web", "app", "metadata").write_text('{"unexpected": true}')

        assert store.load_part("web", "app", "metadata") is None

    def test_no_temporary_files_left(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)
        store.save("web", "app", sample_cache)

        leftovers = [p for p in store.cache_dir("web", "app").iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_clear(self, store: CacheStore, sample_cache: RepoCache) -> None:
        store.save("web", "app", sample_cache)

        assert store.clear("web", "app") is True
        assert not store.cache_dir("web", "app").exists()
        assert store.clear("web", "app") is False

    def test_metadata_is_written_last(
        self, store: CacheStore, sample_cache: RepoCache, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        written: list[str] = []
        write = CacheStore._write_atomic

        def recording_write(path: Path, data: dict) -> None:
            written.append(path.name)
            write(path, data)

        monkeypatch.setattr(store, "_write_atomic", recording_write)
        store.save("web", "app", sample_cache)

        assert written[-1] == "metadata.json"
        assert len(written) == 4

    def test_failed_save_leaves_no_metadata(
        self, store: CacheStore, sample_cache: RepoCache, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store.save("web", "app", sample_cache)

        def failing_write(path: Path, data: dict) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_atomic", failing_write)
        with pytest.raises(OSError):
            store.save("web", "app", sample_cache)

        assert store.load_part("web", "app", "metadata") is None
        assert store.load_part("web", "app", "search_index") is not None

    def test_document_names(self) -> None:
        assert {name for name, _ in PART_DOCUMENTS.values()} == {
            "metadata.json", "structure.json", "searchIndex.json", "codeStructure.json",
        }


# ── Tests: CacheValidator ─────────────────────────────────────────────────


class TestCacheValidator:
    def test_no_metadata_is_invalid(self, validator: CacheValidator) -> None:
        assert validator.is_valid("web", "app") is False

    @requires_git
    def test_valid_after_build(
        self, repos, builder: CacheBuilder, validator: CacheValidator
    ) -> None:
        builder.build("web", "app")
        assert validator.is_valid("web", "app") is True

    @requires_git
    def test_invalid_after_new_commit(
        self, repos, builder: CacheBuilder, validator: CacheValidator
    ) -> None:
        builder.build("web", "app")
        commit_files(repos["app"], {"src/new.ts": "export const added = 1;\n"})

        assert validator.is_valid("web", "app") is False

    @requires_git
    def test_only_metadata_decides(
        self, repos, builder: CacheBuilder, store: CacheStore, validator: CacheValidator
    ) -> None:
        """Other documents being broken does not change validity."""
        builder.build("web", "app")
        store.document_path("web", "app", "structure").unlink()

        assert validator.is_valid("web", "app") is True

    @requires_git
    def test_interrupted_rebuild_is_invalid(
        self,
        repos,
        builder: CacheBuilder,
        store: CacheStore,
        validator: CacheValidator,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A rebuild that fails before metadata is written leaves no stale valid cache."""
        builder.build("web", "app")
        commit_files(repos["app"], {"src/new.ts": "export const brandNewIdentifier = 1;\n"})
        write = CacheStore._write_atomic

        def write_only_metadata(path: Path, data: dict) -> None:
            if path.name != "metadata.json":
                raise OSError("disk full")
            write(path, data)

        monkeypatch.setattr(store, "_write_atomic", write_only_metadata)
        with pytest.raises(OSError):
            builder.build("web", "app")

        assert validator.is_valid("web", "app") is False

    def test_revision_error_is_invalid(
        self, base_dir: Path, store: CacheStore, sample_cache: RepoCache, validator: CacheValidator
    ) -> None:
        """A directory that is not a git repository fails closed."""
        (base_dir / "web" / "app").mkdir(parents=True)
        store.save("web", "app", sample_cache)

        assert validator.is_valid("web", "app") is False

    def test_absent_tree_is_invalid(
        self, store: CacheStore, sample_cache: RepoCache, validator: CacheValidator
    ) -> None:
        store.save("web", "app", sample_cache)
        assert validator.is_valid("web", "app") is False


# ── Tests: CacheBuilder ───────────────────────────────────────────────────


@requires_git
class TestCacheBuilder:
    def test_build_produces_all_artifacts(self, repos, builder: CacheBuilder) -> None:
        cache = builder.build("web", "app")

        assert "src/user.ts" in cache.structure.files
        assert "getUserProfile" in cache.search_index.exact_terms
        assert [c.name for c in cache.code_structure.classes] == ["UserService"]
        assert cache.metadata.manifest_info.dependencies == {"react": "^18.2.0"}

    def test_structure_document_carries_file_facts(
        self, repos, builder: CacheBuilder, store: CacheStore
    ) -> None:
        builder.build("web", "app")

        structure = store.load_part("web", "app", "structure")
        assert structure.files["src/user.ts"].imported_modules == ["./api"]

    def test_rebuild_is_idempotent(self, repos, builder: CacheBuilder, store: CacheStore) -> None:
        builder.build("web", "app")
        first = store.load_part("web", "app", "metadata")
        builder.build("web", "app")
        second = store.load_part("web", "app", "metadata")

        assert first.revision_id == second.revision_id
        assert first.stats == second.stats

    def test_absent_tree_raises(self, repos, builder: CacheBuilder) -> None:
        with pytest.raises(RepositoryNotFoundError):
            builder.build("tools", "cli")
