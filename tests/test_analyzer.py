import pytest

from pipegen.core.services.analyzer import detect_project_type


def _touch(path, content=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestDetectProjectType:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("src/App/App.csproj", "dotnet"),
            ("Solution.sln", "dotnet"),
            ("package.json", "nodejs"),
            ("requirements.txt", "python"),
            ("pyproject.toml", "python"),
            ("setup.py", "python"),
            ("Dockerfile", "docker"),
        ],
    )
    def test_markers(self, tmp_path, filename, expected):
        _touch(tmp_path / filename)

        project_type, logs, warnings = detect_project_type(tmp_path)

        assert project_type == expected
        assert logs[-1] == f"Detected project type: {expected}"
        assert warnings == []

    def test_empty_directory_is_generic(self, tmp_path):
        project_type, _, warnings = detect_project_type(tmp_path)

        assert project_type == "generic"
        assert warnings == ["Could not detect project type, using 'generic'."]

    def test_ignored_directories(self, tmp_path):
        _touch(tmp_path / "node_modules" / "lib" / "package.json")
        _touch(tmp_path / ".git" / "setup.py")

        project_type, _, _ = detect_project_type(tmp_path)
        assert project_type == "generic"

    def test_priority_and_warning(self, tmp_path):
        _touch(tmp_path / "Dockerfile")
        _touch(tmp_path / "package.json")
        _touch(tmp_path / "Api.csproj")

        project_type, _, warnings = detect_project_type(str(tmp_path))

        assert project_type == "dotnet"
        assert len(warnings) == 1
        assert "Several project types detected" in warnings[0]

    def test_missing_path(self, tmp_path):
        project_type, _, warnings = detect_project_type(tmp_path / "missing")

        assert project_type == "generic"
        assert "is not a directory" in warnings[0]
