import os

import pytest

from simplecache.core.namespace_resolver import (
    ENTRIES_DIR_NAME,
    ENTRY_SUFFIX,
    NamespaceResolver,
    hash_key,
    normalize_namespace,
)
from simplecache.domain.exceptions import InvalidNamespaceError
from simplecache.domain.models.common import CacheKey


@pytest.fixture
def resolver(tmp_path):
    return NamespaceResolver(tmp_path / "root")


@pytest.mark.parametrize("raw, expected", [
    ("", ""),
    (None, ""),
    ("catalog", "catalog"),
    ("/catalog/section/", "catalog/section"),
    ("catalog//section", "catalog/section"),
    ("catalog\\section", "catalog/section"),
    ("v1.2", "v1.2"),
])
def test_normalize_namespace(raw, expected):
    assert normalize_namespace(raw) == expected


@pytest.mark.parametrize("raw", ["..", "a/../b", ".", "./a", ".hidden", "a/.entries", "sp ace", "a:b", 42])
def test_normalize_namespace_rejects_unsafe_segments(raw):
    with pytest.raises(InvalidNamespaceError):
        normalize_namespace(raw)


def test_resolve_layout(resolver):
    location = resolver.resolve("catalog/menu", CacheKey("top"))
    digest = hash_key(CacheKey("top"))

    assert location.path == resolver.base_dir / "catalog" / "menu" / ENTRIES_DIR_NAME / digest[:2] / f"{digest}{ENTRY_SUFFIX}"
    assert location.namespace == "catalog/menu"
    assert location.key == "top"


def test_resolve_is_deterministic(resolver):
    assert resolver.resolve("ns", CacheKey("k")) == resolver.resolve("/ns/", CacheKey("k"))


def test_distinct_pairs_resolve_to_distinct_paths(resolver):
    pairs = [("", "a"), ("", "b"), ("a", "a"), ("a", "b"), ("a/b", "a"), ("A", "a"), ("", "A")]
    paths = {resolver.resolve(ns, CacheKey(key)).path for ns, key in pairs}
    assert len(paths) == len(pairs)


def test_key_text_never_reaches_the_path(resolver):
    location = resolver.resolve("", CacheKey("..%2F..%2Fetc%2Fpasswd"))
    assert "etc" not in str(location.path.relative_to(resolver.base_dir))
    assert resolver.base_dir in location.path.parents


def test_namespace_path(resolver):
    assert resolver.namespace_path("") == resolver.base_dir
    assert resolver.namespace_path("a/b") == resolver.base_dir / "a" / "b"


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_symlinked_namespace_outside_root_is_rejected(tmp_path, resolver):
    outside = tmp_path / "outside"
    outside.mkdir()
    resolver.base_dir.mkdir(parents=True)
    try:
        os.symlink(outside, resolver.base_dir / "escape", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("cannot create symlinks here")

    with pytest.raises(InvalidNamespaceError, match="outside"):
        resolver.resolve("escape", CacheKey("k"))


def test_uppercase_segments_are_marked_on_disk(resolver):
    assert resolver.namespace_path("Catalog/menuItems") == resolver.base_dir / "^catalog" / "menu^items"


def test_namespaces_differing_only_in_case_stay_apart_when_case_folded(resolver):
    namespaces = ["menu", "Menu", "MENU", "mEnU", "a/b", "A/b", "a/B"]
    folded = {str(resolver.resolve(ns, CacheKey("k")).path).casefold() for ns in namespaces}
    assert len(folded) == len(namespaces)
