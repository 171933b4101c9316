import json

import pytest

import unity_changeset.cli as cli
from unity_changeset.catalog import CatalogProvider
from unity_changeset.errors import ProviderUnavailableError
from unity_changeset.options import SearchMode
from unity_changeset.release import ReleaseStream, UnityChangeset


class _FakeCatalog(CatalogProvider):
    name = "fake"

    def __init__(self, releases=None, error=None):
        self.releases = releases or []
        self.error = error
        self.scopes = []

    def fetch_releases(self, scope):
        self.scopes.append(scope)
        if self.error is not None:
            raise self.error
        return list(self.releases)


@pytest.fixture
def fake_catalog(monkeypatch, changesets_for_test):
    catalog = _FakeCatalog(
        changesets_for_test + [UnityChangeset("2018.4.36f1", "6cd387d23174", ReleaseStream.LTS)]
    )
    sources = []
    configs = []

    def fake_build_catalog(config=None, source="auto"):
        sources.append(source)
        configs.append(config)
        return catalog

    monkeypatch.setattr(cli, "build_catalog", fake_build_catalog)
    catalog.sources = sources
    catalog.configs = configs
    return catalog


def test_bare_version_prints_changeset(fake_catalog, capsys):
    assert cli.main(["2018.4.36f1"]) == 0
    assert capsys.readouterr().out == "6cd387d23174\n"
    assert fake_catalog.sources == ["auto"]


def test_get_command_with_source(fake_catalog, capsys):
    assert cli.main(["get", "2018.4.36f1", "--source", "db"]) == 0
    assert capsys.readouterr().out.strip() == "6cd387d23174"
    assert fake_catalog.sources == ["db"]


def test_unknown_version_exits_one(fake_catalog, capsys):
    assert cli.main(["2018.3.0f3"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "The given version was not found." in captured.err


def test_provider_failure_exits_one(monkeypatch, capsys):
    failing = _FakeCatalog(error=ProviderUnavailableError("Unable to fetch changeset DB"))
    monkeypatch.setattr(cli, "build_catalog", lambda config=None, source="auto": failing)
    assert cli.main(["list"]) == 1
    assert "Unable to fetch changeset DB" in capsys.readouterr().err


def test_list_default_output(fake_catalog, capsys):
    assert cli.main(["list", "--grep", "2018.3"]) == 0
    assert capsys.readouterr().out.splitlines() == [
        "2018.3.2f1\t000000000000",
        "2018.3.1f1\t000000000000",
        "2018.3.0f1\t000000000000",
    ]


def test_list_version_only_range(fake_catalog, capsys):
    assert cli.main(["list", "--versions", "--min", "2018.3", "--max", "2018.4", "--oldest-patch"]) == 0
    assert capsys.readouterr().out.splitlines() == ["2018.4.0f1", "2018.3.0f1"]


def test_list_minor_versions_implies_latest_patch(fake_catalog, capsys):
    assert cli.main(["list", "--minor-version-only", "--json"]) == 0
    assert json.loads(capsys.readouterr().out) == ["2019.2", "2019.1", "2018.4", "2018.3", "2018.2"]


def test_list_pretty_json_with_xlts(fake_catalog, capsys):
    assert cli.main(["list", "--pretty-json", "--xlts", "--latest-patch", "--grep", "2018.4"]) == 0
    output = capsys.readouterr().out
    parsed = json.loads(output)
    assert [item["version"] for item in parsed] == ["2018.4.36f1"]
    assert output.startswith("[\n  {")


def test_list_all_lifecycles(fake_catalog, capsys):
    assert cli.main(["list", "--all", "--all-lifecycles", "--versions", "--grep", "2019.1.0"]) == 0
    assert len(capsys.readouterr().out.splitlines()) == 6


def test_empty_result_is_success(fake_catalog, capsys):
    assert cli.main(["list", "--grep", "^1999"]) == 0
    assert capsys.readouterr().out == "\n"


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["list"], SearchMode.DEFAULT),
        (["list", "--all"], SearchMode.ALL),
        (["list", "--beta"], SearchMode.PRE_RELEASE),
        (["list", "--pre-release"], SearchMode.PRE_RELEASE),
        (["list", "--lts"], SearchMode.LTS),
        (["list", "--lts", "--xlts"], SearchMode.XLTS),
        (["list", "--supported"], SearchMode.SUPPORTED),
    ],
)
def test_list_search_mode_flags(argv, expected):
    args = cli.build_parser().parse_args(argv)
    assert cli._search_mode(args) is expected


@pytest.mark.parametrize(
    "argv",
    [
        ["list", "--all", "--lts"],
        ["list", "--latest-patch", "--oldest-patch"],
        ["list", "--version-only", "--minor-version-only"],
        ["list", "--latest-lifecycle", "--all-lifecycles"],
        ["list", "--json", "--pretty-json"],
    ],
)
def test_conflicting_flags_are_usage_errors(argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    assert excinfo.value.code == 2


def test_invalid_grep_is_usage_error(fake_catalog, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["list", "--grep", "[invalid"])
    assert excinfo.value.code == 2
    assert "Invalid grep pattern" in capsys.readouterr().err
    assert fake_catalog.scopes == []


def test_invalid_config_is_usage_error(fake_catalog, tmp_path, capsys):
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("proxy: {}\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["list", "--config", str(config_path)])
    assert excinfo.value.code == 2
    assert "Unsupported config keys" in capsys.readouterr().err


def test_no_arguments_is_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2
    assert "usage:" in capsys.readouterr().err


def test_source_before_list_command(fake_catalog, capsys):
    assert cli.main(["--source", "db", "list", "--versions", "--grep", "2018.4"]) == 0
    assert capsys.readouterr().out.splitlines() == ["2018.4.36f1", "2018.4.1f1", "2018.4.0f1"]
    assert fake_catalog.sources == ["db"]


def test_source_before_list_without_list_flags(fake_catalog, capsys):
    assert cli.main(["--source=archive", "list"]) == 0
    assert capsys.readouterr().err == ""
    assert fake_catalog.sources == ["archive"]


def test_config_before_bare_version(fake_catalog, tmp_path, capsys):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("db:\n  url: \"https://example.invalid/db\"\n", encoding="utf-8")
    assert cli.main(["--config", str(config_path), "2018.4.36f1"]) == 0
    assert capsys.readouterr().out == "6cd387d23174\n"
    assert fake_catalog.sources == ["auto"]
    assert fake_catalog.configs[0].db.url == "https://example.invalid/db"


def test_option_after_command_wins_over_option_before(fake_catalog, capsys):
    assert cli.main(["--source", "db", "get", "2018.4.36f1", "--source", "api"]) == 0
    assert fake_catalog.sources == ["api"]


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["2018.4.36f1"], ["get", "2018.4.36f1"]),
        (["--source", "db", "list"], ["--source", "db", "list"]),
        (["--source", "db", "2018.4.36f1"], ["--source", "db", "get", "2018.4.36f1"]),
        (["--source=db", "2018.4.36f1"], ["--source=db", "get", "2018.4.36f1"]),
        (["--config", "c.yaml", "--version"], ["--config", "c.yaml", "--version"]),
    ],
)
def test_normalize_argv_skips_leading_options(argv, expected):
    assert cli._normalize_argv(argv) == expected
