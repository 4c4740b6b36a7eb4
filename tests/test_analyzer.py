"""Tests for running tsc and parsing its diagnostics."""

import subprocess

import pytest

from bangfix.analyzer import TscAnalyzer, find_root_path, offset_from_position
from bangfix.errors import AnalyzerError, ConfigError

A_TS = "const x = 1;\nconst y = list[0].foo;\n"


@pytest.fixture
def project(ts_project, load_project):
    tsconfig = ts_project({"a.ts": A_TS, "b.ts": "x;\n"})
    return load_project(tsconfig, analyzer=TscAnalyzer(tsc_command="tsc", extra_args=[]))


def _completed(stdout="", returncode=2, stderr=""):
    return subprocess.CompletedProcess(args=["tsc"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestOffsetFromPosition:

    def test_first_line(self):
        assert offset_from_position("abc", 1, 2) == 1

    def test_later_line(self):
        assert offset_from_position("ab\ncd", 2, 2) == 4

    def test_crlf_line_breaks(self):
        assert offset_from_position("a\r\nb", 2, 1) == 3

    def test_utf16_columns(self):
        # the emoji is two UTF-16 code units but one character
        text = "\U0001F600x"
        assert offset_from_position(text, 1, 3) == 1

    def test_column_past_end_clamps(self):
        assert offset_from_position("ab", 1, 10) == 2


class TestFindRootPath:

    def test_walks_upward(self, tmp_path):
        lib = tmp_path / "repo" / "node_modules" / "typescript" / "lib"
        lib.mkdir(parents=True)
        nested = tmp_path / "repo" / "packages" / "app"
        nested.mkdir(parents=True)
        found = find_root_path(nested, "node_modules/typescript/lib")
        assert found == lib.resolve()

    def test_returns_none_at_filesystem_root(self, tmp_path):
        assert find_root_path(tmp_path, "no-such-dir-for-bangfix/lib") is None


class TestParseOutput:

    def test_located_diagnostics(self, project):
        output = (
            "a.ts(2,11): error TS2532: Object is possibly 'undefined'.\n"
            "b.ts(1,1): error TS2304: Cannot find name 'x'.\n"
        )
        first, second = project.analyzer.parse_output(output, project)

        assert first.file_path == project.root_dir / "a.ts"
        assert first.line == 2
        assert first.code == 2532
        assert first.message == "Object is possibly 'undefined'."
        assert A_TS[first.start_offset:].startswith("list[0]")
        assert second.code == 2304
        assert second.start_offset == 0

    def test_continuation_lines_are_dropped(self, project):
        output = (
            "a.ts(2,11): error TS2322: Type 'string | undefined' is not assignable to type 'string'.\n"
            "  Type 'undefined' is not assignable to type 'string'.\n"
        )
        diagnostics = project.analyzer.parse_output(output, project)
        assert len(diagnostics) == 1
        assert diagnostics[0].message.startswith("Type 'string | undefined'")

    def test_global_config_error(self, project):
        output = "error TS5058: The specified path does not exist: 'tsconfig.json'.\n"
        with pytest.raises(ConfigError) as exc_info:
            project.analyzer.parse_output(output, project)
        assert "TS5058" in str(exc_info.value)

    def test_other_global_errors_are_ignored(self, project):
        output = "error TS6053: File 'missing.ts' not found.\n"
        assert project.analyzer.parse_output(output, project) == []

    def test_error_inside_tsconfig(self, project):
        output = "tsconfig.json(1,3): error TS1005: ',' expected.\n"
        with pytest.raises(ConfigError):
            project.analyzer.parse_output(output, project)

    def test_deprecated_option_in_tsconfig_is_not_fatal(self, project):
        output = (
            "tsconfig.json(1,21): error TS5101: Option 'baseUrl' is deprecated and will "
            "stop functioning in TypeScript 7.0.\n"
            "a.ts(2,11): error TS2532: Object is possibly 'undefined'.\n"
        )
        diagnostics = project.analyzer.parse_output(output, project)
        assert [d.code for d in diagnostics] == [2532]

    def test_unknown_global_option_is_not_fatal(self, project):
        output = "error TS5023: Unknown compiler option 'foo'.\n"
        assert project.analyzer.parse_output(output, project) == []

    def test_unreadable_tsconfig_is_fatal(self, project):
        output = "error TS5083: Cannot read file '/missing/tsconfig.json'.\n"
        with pytest.raises(ConfigError, match="TS5083"):
            project.analyzer.parse_output(output, project)

    def test_dependency_diagnostics_are_skipped(self, project):
        output = "node_modules/@types/foo/index.d.ts(1,1): error TS2300: Duplicate identifier 'x'.\n"
        assert project.analyzer.parse_output(output, project) == []

    def test_unreadable_file_is_skipped(self, project):
        output = "gone.ts(1,1): error TS2532: Object is possibly 'undefined'.\n"
        assert project.analyzer.parse_output(output, project) == []


class TestCommand:

    def test_explicit_command(self, project):
        cmd = TscAnalyzer(tsc_command="npx tsc", extra_args=[]).command(project)
        assert cmd == ["npx", "tsc", "--noEmit", "--pretty", "false", "-p", str(project.config_path)]

    def test_prefers_local_typescript(self, ts_project, load_project):
        tsconfig = ts_project({"a.ts": A_TS})
        lib = tsconfig.parent / "node_modules" / "typescript" / "lib"
        lib.mkdir(parents=True)
        (lib / "tsc.js").write_text("// compiler\n")
        project = load_project(tsconfig, analyzer=None)

        cmd = TscAnalyzer(tsc_command="", node_binary="node", extra_args=["--strict"]).command(project)

        assert cmd[:2] == ["node", str(lib.resolve() / "tsc.js")]
        assert cmd[-1] == "--strict"


class TestDiagnostics:

    def test_runs_in_project_root(self, project, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append((cmd, kwargs))
            return _completed("a.ts(2,11): error TS2532: Object is possibly 'undefined'.\n")

        monkeypatch.setattr("bangfix.analyzer.subprocess.run", fake_run)
        diagnostics = project.diagnostics()

        assert len(diagnostics) == 1
        cmd, kwargs = calls[0]
        assert cmd[0] == "tsc"
        assert kwargs["cwd"] == project.root_dir

    def test_clean_project(self, project, monkeypatch):
        monkeypatch.setattr("bangfix.analyzer.subprocess.run", lambda cmd, **kw: _completed(returncode=0))
        assert project.diagnostics() == []

    def test_missing_compiler(self, project, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(2, "No such file or directory", cmd[0])

        monkeypatch.setattr("bangfix.analyzer.subprocess.run", fake_run)
        with pytest.raises(AnalyzerError, match="Could not run tsc"):
            project.diagnostics()

    def test_crash_exit_code(self, project, monkeypatch):
        monkeypatch.setattr(
            "bangfix.analyzer.subprocess.run",
            lambda cmd, **kw: _completed(returncode=134, stderr="FATAL ERROR: heap out of memory"),
        )
        with pytest.raises(AnalyzerError, match="heap out of memory"):
            project.diagnostics()
