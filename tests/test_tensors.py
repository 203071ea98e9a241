import types

import numpy as np
import pytest

from fluxgen import tensors
from fluxgen.errors import EmbeddingsFileError, NoiseFileError


def _write_floats(path, values):
    np.asarray(values, dtype="<f4").tofile(path)
    return path


@pytest.mark.parametrize("tokens", [0, 1, 3])
def test_embeddings_sequence_length_from_file_size(tmp_path, tokens):
    text_dim = 16
    values = np.arange(tokens * text_dim, dtype=np.float32)
    path = _write_floats(tmp_path / "prompt.emb", values)

    buffer = tensors.load_embeddings(path, text_dim=text_dim)

    assert buffer.shape == (1, tokens, text_dim)
    assert buffer.data.shape == (1, tokens, text_dim)
    assert buffer.data.dtype == np.float32
    assert buffer.length == tokens * text_dim
    assert buffer.file_size == tokens * text_dim * 4
    np.testing.assert_array_equal(buffer.data.ravel(), values)


def test_embeddings_default_text_dim(tmp_path):
    path = _write_floats(tmp_path / "prompt.emb", np.zeros(2 * tensors.TEXT_DIM))
    buffer = tensors.load_embeddings(path)
    assert buffer.shape == (1, 2, 7680)


def test_embeddings_partial_token_is_truncated(tmp_path):
    text_dim = 8
    values = np.arange(2 * text_dim + 3, dtype=np.float32)
    path = _write_floats(tmp_path / "prompt.emb", values)

    buffer = tensors.load_embeddings(path, text_dim=text_dim)

    assert buffer.shape == (1, 2, text_dim)
    np.testing.assert_array_equal(buffer.data.ravel(), values[: 2 * text_dim])


def test_embeddings_partial_token_rejected_when_strict(tmp_path):
    path = _write_floats(tmp_path / "prompt.emb", np.zeros(9, dtype=np.float32))
    with pytest.raises(EmbeddingsFileError, match="not a multiple of 32"):
        tensors.load_embeddings(path, text_dim=8, strict=True)


def test_embeddings_missing_file(tmp_path):
    missing = tmp_path / "absent.emb"
    with pytest.raises(EmbeddingsFileError) as excinfo:
        tensors.load_embeddings(missing)
    assert excinfo.value.path == str(missing)
    assert "Failed to open embeddings file" in str(excinfo.value)


@pytest.mark.parametrize("count", [0, 1, 5, 1024])
def test_noise_length_from_file_size(tmp_path, count):
    values = np.linspace(-1.0, 1.0, count, dtype=np.float32)
    path = _write_floats(tmp_path / "noise.bin", values)

    buffer = tensors.load_noise(path)

    assert buffer.length == count
    assert buffer.shape == (count,)
    np.testing.assert_array_equal(buffer.data, values)


def test_noise_trailing_bytes_ignored(tmp_path):
    path = tmp_path / "noise.bin"
    path.write_bytes(np.ones(3, dtype="<f4").tobytes() + b"\x00\x01")
    assert tensors.load_noise(path).length == 3


def test_noise_missing_file(tmp_path):
    with pytest.raises(NoiseFileError, match="Failed to open noise file"):
        tensors.load_noise(tmp_path / "absent.bin")


def test_short_read_is_reported(tmp_path, monkeypatch):
    path = _write_floats(tmp_path / "noise.bin", np.ones(4, dtype=np.float32))

    class _StatResult:
        st_size = 64

    monkeypatch.setattr(
        tensors, "os", types.SimpleNamespace(fstat=lambda fd: _StatResult())
    )

    with pytest.raises(NoiseFileError, match="read 16 of 64 bytes"):
        tensors.load_noise(path)
