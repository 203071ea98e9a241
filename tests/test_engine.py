import sys
import types

import pytest

from fluxgen.engine import load_engine
from fluxgen.errors import ModelLoadError


@pytest.fixture()
def backend_module(monkeypatch):
    module = types.ModuleType("fluxgen_test_backend")
    monkeypatch.setitem(sys.modules, "fluxgen_test_backend", module)
    return module


def test_load_engine_calls_factory(backend_module):
    sentinel = object()
    backend_module.make = lambda: sentinel
    assert load_engine("fluxgen_test_backend:make") is sentinel


def test_load_engine_reads_environment(backend_module, monkeypatch):
    class Backend:
        pass

    backend_module.Backend = Backend
    monkeypatch.setenv("FLUX_ENGINE", "fluxgen_test_backend:Backend")
    assert isinstance(load_engine(), Backend)


def test_load_engine_requires_configuration(monkeypatch):
    monkeypatch.delenv("FLUX_ENGINE", raising=False)
    with pytest.raises(ModelLoadError, match="FLUX_ENGINE"):
        load_engine()


@pytest.mark.parametrize("spec", ["no_colon", ":factory", "module:"])
def test_load_engine_rejects_malformed_reference(spec):
    with pytest.raises(ModelLoadError, match="Invalid engine reference"):
        load_engine(spec)


def test_load_engine_import_failure():
    with pytest.raises(ModelLoadError, match="Failed to import engine module"):
        load_engine("fluxgen_no_such_backend:make")


def test_load_engine_non_callable(backend_module):
    backend_module.make = 3
    with pytest.raises(ModelLoadError, match="not callable"):
        load_engine("fluxgen_test_backend:make")


def test_load_engine_factory_failure(backend_module):
    def make():
        raise RuntimeError("no GPU")

    backend_module.make = make
    with pytest.raises(ModelLoadError, match="no GPU") as excinfo:
        load_engine("fluxgen_test_backend:make")
    assert isinstance(excinfo.value.__cause__, RuntimeError)
