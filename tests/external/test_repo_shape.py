from __future__ import annotations

import json
from pathlib import Path


_README_ANCHORS = (
    "Generate TypeScript types for the Kubernetes API",
    "--api",
    "--file",
    "--patch",
    "--beta",
    "--output-root",
    "--list-modules",
    "index.d.ts",
    "meta.d.ts",
    "pytest",
)


def _tool_root() -> Path:
    return Path(__file__).resolve().parents[2]


def test_t_01_required_artifacts_exist() -> None:
    tool_root = _tool_root()
    required_paths = {
        "k8s_types_gen.py",
        "pyproject.toml",
        "README.md",
        "assets/package.json",
        "assets/README.md",
        "tests/conftest.py",
        "tests/fixtures/swagger_minimal.json",
        "tests/external/test_external_cli.py",
    }

    missing = sorted(path for path in required_paths if not (tool_root / path).exists())
    assert missing == []


def test_t_02_generated_output_is_not_committed() -> None:
    tool_root = _tool_root()

    assert not (tool_root / "types").exists()


def test_t_03_package_template_is_valid_json_with_placeholder_version() -> None:
    template = json.loads(
        (_tool_root() / "assets" / "package.json").read_text(encoding="utf-8")
    )

    assert template["version"] == "0.0.0"
    assert template["types"] == "index.d.ts"


def test_t_04_readme_includes_usage_and_testing_sections() -> None:
    content = (_tool_root() / "README.md").read_text(encoding="utf-8")

    missing = [anchor for anchor in _README_ANCHORS if anchor not in content]
    assert missing == [], f"README.md missing required anchors: {missing}"
