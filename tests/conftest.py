import argparse
import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import k8s_types_gen as gen  # noqa: E402

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def minimal_document() -> dict:
    return json.loads((FIXTURES_DIR / "swagger_minimal.json").read_text(encoding="utf-8"))


@pytest.fixture
def minimal_document_path() -> Path:
    return FIXTURES_DIR / "swagger_minimal.json"


@pytest.fixture
def make_document() -> Callable[..., dict]:
    def _make_document(definitions: dict, version: str = "v1.30.2") -> dict:
        return {
            "swagger": "2.0",
            "info": {"title": "Kubernetes", "version": version},
            "definitions": definitions,
        }

    return _make_document


@pytest.fixture
def make_store(make_document: Callable[..., dict]) -> Callable[..., gen.SchemaStore]:
    def _make_store(definitions: dict, version: str = "v1.30.2") -> gen.SchemaStore:
        return gen.SchemaStore.from_document(make_document(definitions, version))

    return _make_store


@pytest.fixture
def make_resolved(
    make_store: Callable[..., gen.SchemaStore],
) -> Callable[[dict], tuple[gen.ResolvedDefinition, ...]]:
    def _make_resolved(definitions: dict) -> tuple[gen.ResolvedDefinition, ...]:
        return gen.resolve_all(make_store(definitions))

    return _make_resolved


@pytest.fixture
def file_by_path() -> Callable[[gen.GenerationResult, str], str]:
    def _file_by_path(result: gen.GenerationResult, path: str) -> str:
        for generated in result.files:
            if generated.path == path:
                return generated.text
        raise AssertionError(
            f"no generated file {path!r}; have {[f.path for f in result.files]}"
        )

    return _file_by_path


@pytest.fixture
def make_args(tmp_path: Path) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "api": "master",
            "file": None,
            "patch": 0,
            "beta": None,
            "output_root": tmp_path / "types",
            "timeout": 60.0,
            "list_modules": False,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args
