import pytest

from fluxgen import env
from fluxgen.errors import ArgumentError

pytestmark = pytest.mark.usefixtures("test_env_file")


@pytest.mark.parametrize("value", ["1", "true", "Yes", " on "])
def test_as_boolean_true(value):
    assert env.as_boolean(value) is True


@pytest.mark.parametrize("value", ["0", "false", "NO", "off"])
def test_as_boolean_false(value):
    assert env.as_boolean(value) is False


def test_as_boolean_rejects_other_values():
    with pytest.raises(ArgumentError, match="FLUX_X"):
        env.as_boolean("sometimes", key="FLUX_X")


def test_defaults_without_environment():
    assert env.engine_spec() is None
    assert env.default_model_dir() is None
    assert env.strict_embeddings_enabled() is False
    assert env.write_metadata_enabled() is True


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("FLUX_ENGINE", " backend:create ")
    monkeypatch.setenv("FLUX_MODEL_DIR", "/models")
    monkeypatch.setenv("FLUX_STRICT_EMBEDDINGS", "yes")
    monkeypatch.setenv("FLUX_WRITE_METADATA", "0")

    assert env.engine_spec() == "backend:create"
    assert env.default_model_dir() == "/models"
    assert env.strict_embeddings_enabled() is True
    assert env.write_metadata_enabled() is False
