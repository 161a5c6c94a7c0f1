import pytest

from pipegen.core.config import load_options_file


class TestLoadOptionsFile:
    def test_yaml(self, tmp_path):
        path = tmp_path / "options.yml"
        path.write_text("project_type: dotnet\nstages:\n  - build\n  - test\n", encoding="utf-8")

        assert load_options_file(path) == {"project_type": "dotnet", "stages": ["build", "test"]}

    def test_json(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text('{"project_type": "python", "include_tests": false}', encoding="utf-8")

        assert load_options_file(str(path)) == {"project_type": "python", "include_tests": False}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "options.yml"
        path.write_text("", encoding="utf-8")

        assert load_options_file(path) == {}

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "options.yml"
        path.write_text("- dotnet\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_options_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_options_file(tmp_path / "nope.yml")
