# tests/test_settings.py
import threading
import time

import pytest
import yaml

from flatscribe.config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_OUTPUT_FILE
from flatscribe.core import settings
from flatscribe.core.settings import BASE_CONFIG, ConfigCache, config_template, load_user_config, resolve_config
from flatscribe.errors import ConfigParseError


@pytest.fixture
def base():
    return {
        "output_file": "SNAPSHOT.md",
        "include": ["base-include"],
        "exclude": ["**/node_modules/**", "**/*.png"],
        "language_map": {".py": "python", ".ts": "typescript"},
        "debounce_ms": 1500,
        "max_file_size_bytes": 0,
    }


# --- Test 1: resolve_config merge rules ---

def test_no_user_config_returns_base_values(base):
    resolved = resolve_config(base, None)
    assert resolved.output_path == "SNAPSHOT.md"
    assert resolved.include_patterns == ("base-include",)
    assert resolved.exclude_patterns == ("**/node_modules/**", "**/*.png")
    assert resolved.debounce_ms == 1500
    assert resolved.max_file_size_bytes == 0


def test_user_excludes_are_appended_to_base_excludes(base):
    resolved = resolve_config(base, {"exclude": ["x"]})
    assert resolved.exclude_patterns == ("**/node_modules/**", "**/*.png", "x")
    assert resolved.default_exclude_patterns == ("**/node_modules/**", "**/*.png")
    assert resolved.user_exclude_patterns == ("x",)


def test_user_includes_replace_base_includes(base):
    resolved = resolve_config(base, {"include": ["y"]})
    assert resolved.include_patterns == ("y",)


def test_empty_user_include_keeps_base_includes(base):
    resolved = resolve_config(base, {"include": []})
    assert resolved.include_patterns == ("base-include",)


def test_language_map_is_shallow_merged_and_user_wins(base):
    resolved = resolve_config(base, {"language_map": {".ts": "ts", ".vue": "vue"}})
    assert resolved.language_map == {".py": "python", ".ts": "ts", ".vue": "vue"}


def test_scalars_come_from_user_when_present(base):
    resolved = resolve_config(base, {"output_file": "docs/out.md", "debounce_ms": 10, "max_file_size_bytes": 2048})
    assert resolved.output_path == "docs/out.md"
    assert resolved.debounce_ms == 10
    assert resolved.max_file_size_bytes == 2048


def test_max_file_size_kb_alias(base):
    assert resolve_config(base, {"max_file_size_kb": 2}).max_file_size_bytes == 2048
    # The byte setting wins when both are given
    assert resolve_config(base, {"max_file_size_kb": 2, "max_file_size_bytes": 5}).max_file_size_bytes == 5


@pytest.mark.parametrize("bad", ["/etc/passwd", "../outside.md", "a/../../b.md", "", "."])
def test_output_path_must_stay_inside_root(base, bad):
    assert resolve_config(base, {"output_file": bad}).output_path == "SNAPSHOT.md"


def test_wrong_types_fall_back_to_base(base):
    resolved = resolve_config(base, {"debounce_ms": "soon", "max_file_size_bytes": -1, "exclude": 3})
    assert resolved.debounce_ms == 1500
    assert resolved.max_file_size_bytes == 0
    assert resolved.exclude_patterns == ("**/node_modules/**", "**/*.png")


def test_resolve_does_not_mutate_inputs(base):
    user = {"exclude": ["x"], "language_map": {".ts": "ts"}}
    resolve_config(base, user)
    assert base["exclude"] == ["**/node_modules/**", "**/*.png"]
    assert base["language_map"][".ts"] == "typescript"
    assert user == {"exclude": ["x"], "language_map": {".ts": "ts"}}


# --- Test 2: loading the YAML source ---

def test_load_user_config_accepts_comments(tmp_path):
    config_file = tmp_path / ".flatscribe.yaml"
    config_file.write_text("# header\ninclude:\n  - dist/bundle.js  # keep this\n", encoding="utf-8")
    assert load_user_config(config_file) == {"include": ["dist/bundle.js"]}


def test_load_user_config_accepts_json_syntax(tmp_path):
    config_file = tmp_path / ".flatscribe.yaml"
    config_file.write_text('{"exclude": ["dist/**"], "debounce_ms": 200}', encoding="utf-8")
    assert load_user_config(config_file) == {"exclude": ["dist/**"], "debounce_ms": 200}


def test_missing_or_empty_config_is_empty(tmp_path):
    assert load_user_config(tmp_path / "missing.yaml") == {}
    (tmp_path / "empty.yaml").write_text("", encoding="utf-8")
    assert load_user_config(tmp_path / "empty.yaml") == {}


@pytest.mark.parametrize("text", ["include: [unclosed", "- just\n- a list\n", "!!python/object:os.system {}"])
def test_malformed_config_raises_parse_error(tmp_path, text):
    config_file = tmp_path / ".flatscribe.yaml"
    config_file.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigParseError):
        load_user_config(config_file)


def test_config_template_is_valid_and_matches_defaults():
    data = yaml.safe_load(config_template())
    assert data["output_file"] == DEFAULT_OUTPUT_FILE
    assert data["include"] == [] and data["exclude"] == []
    resolved = resolve_config(BASE_CONFIG, data)
    assert resolved.exclude_patterns == tuple(DEFAULT_EXCLUDE_PATTERNS)


# --- Test 3: ConfigCache ---

@pytest.fixture
def load_spy(monkeypatch):
    calls = []
    real = settings.load_user_config

    def spy(path):
        calls.append(path)
        return real(path)

    monkeypatch.setattr(settings, "load_user_config", spy)
    return calls


def test_cache_reads_source_once(tmp_path, load_spy):
    (tmp_path / ".flatscribe.yaml").write_text("debounce_ms: 20\n", encoding="utf-8")
    cache = ConfigCache(tmp_path)
    first = cache.get_resolved()
    second = cache.get_resolved()
    assert first is second
    assert first.debounce_ms == 20
    assert len(load_spy) == 1


def test_invalidate_forces_a_reload(tmp_path, load_spy):
    config_file = tmp_path / ".flatscribe.yaml"
    config_file.write_text("debounce_ms: 20\n", encoding="utf-8")
    cache = ConfigCache(tmp_path)
    assert cache.get_resolved().debounce_ms == 20

    config_file.write_text("debounce_ms: 30\n", encoding="utf-8")
    assert cache.get_resolved().debounce_ms == 20  # still cached

    cache.invalidate()
    assert cache.get_resolved().debounce_ms == 30
    assert len(load_spy) == 2


def test_malformed_source_falls_back_and_is_cached(tmp_path, load_spy):
    (tmp_path / ".flatscribe.yaml").write_text("include: [unclosed", encoding="utf-8")
    cache = ConfigCache(tmp_path)

    resolved = cache.get_resolved()
    assert resolved == resolve_config(BASE_CONFIG, {})
    cache.get_resolved()
    cache.get_resolved()
    assert len(load_spy) == 1


def test_overrides_beat_the_config_file(tmp_path):
    (tmp_path / ".flatscribe.yaml").write_text("output_file: from-file.md\n", encoding="utf-8")
    cache = ConfigCache(tmp_path, overrides={"output_file": "from-cli.md"})
    assert cache.get_resolved().output_path == "from-cli.md"


def test_concurrent_callers_share_one_load(tmp_path, monkeypatch):
    release = threading.Event()
    calls = []

    def slow_load(path):
        calls.append(path)
        release.wait(5)
        return {"debounce_ms": 42}

    monkeypatch.setattr(settings, "load_user_config", slow_load)
    cache = ConfigCache(tmp_path)
    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.get_resolved())) for _ in range(8)]
    for t in threads:
        t.start()
    time.sleep(0.1)
    release.set()
    for t in threads:
        t.join(5)

    assert len(calls) == 1
    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert results[0].debounce_ms == 42


def test_load_finishing_after_invalidate_is_not_cached(tmp_path, monkeypatch):
    release = threading.Event()
    entered = threading.Event()
    values = iter([1, 2])

    def slow_load(path):
        value = next(values)
        if value == 1:
            entered.set()
            release.wait(5)
        return {"debounce_ms": value}

    monkeypatch.setattr(settings, "load_user_config", slow_load)
    cache = ConfigCache(tmp_path)
    stale = []
    loader = threading.Thread(target=lambda: stale.append(cache.get_resolved()))
    loader.start()
    assert entered.wait(5)
    cache.invalidate()
    release.set()
    loader.join(5)

    assert stale[0].debounce_ms == 1
    assert cache.get_resolved().debounce_ms == 2


def test_non_string_keys_are_ignored(base):
    resolved = resolve_config(base, {1: "a", "foo": "b", "debounce_ms": 5})
    assert resolved.debounce_ms == 5


def test_cache_never_raises_on_odd_keys(tmp_path):
    (tmp_path / ".flatscribe.yaml").write_text("1: a\nfoo: b\ndebounce_ms: 7\n", encoding="utf-8")
    assert ConfigCache(tmp_path).get_resolved().debounce_ms == 7


def test_cache_falls_back_when_resolving_fails(tmp_path, monkeypatch):
    (tmp_path / ".flatscribe.yaml").write_text("debounce_ms: 7\n", encoding="utf-8")
    real_resolve = settings.resolve_config

    def picky_resolve(base, user=None):
        if user:
            raise TypeError("unexpected value")
        return real_resolve(base, user)

    monkeypatch.setattr(settings, "resolve_config", picky_resolve)
    cache = ConfigCache(tmp_path)
    resolved = cache.get_resolved()

    assert resolved.debounce_ms == BASE_CONFIG["debounce_ms"]
    assert cache.get_resolved() is resolved
