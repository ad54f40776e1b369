import importlib.util
from pathlib import Path

import pytest

from shapi.client import transport as default_transport
from shapi.config import Settings
from shapi.orchestrator.pipeline import run_generate

DESCRIPTORS_ROOT = Path(__file__).resolve().parent
ORDERS_ROOT = "descriptors.orders_api:OrdersApi"


def load_module_from(path: Path, name: str):
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def orders_client(tmp_path: Path):
    """The generated client module for the orders descriptor, freshly generated and imported."""
    result = run_generate(
        [ORDERS_ROOT],
        out_dir=tmp_path,
        source_roots=[DESCRIPTORS_ROOT],
        settings=Settings(),
    )
    assert result.ok, [d.render() for d in result.diagnostics]
    return load_module_from(tmp_path / "orders_api_client.py", f"orders_api_client_{tmp_path.name}")


@pytest.fixture
def uninstall_transport():
    yield
    default_transport.install(None)
