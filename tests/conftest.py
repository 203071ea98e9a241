from __future__ import annotations

from pathlib import Path

import pytest

import fluxgen.options as options_module
from fluxgen.imageio import RasterImage
from fluxgen.progress import SubstepKind


@pytest.fixture()
def test_env_file(tmp_path, monkeypatch) -> Path:
    """Provide an isolated .env file for each test that needs CLI parsing."""

    for key in (
        "FLUX_ENGINE",
        "FLUX_MODEL_DIR",
        "FLUX_STRICT_EMBEDDINGS",
        "FLUX_WRITE_METADATA",
    ):
        monkeypatch.delenv(key, raising=False)
    env_path = tmp_path / ".env"
    env_path.write_text("FLUX_WRITE_METADATA=1\n")
    monkeypatch.setattr(options_module, "_DOTENV_FILE", env_path)
    return env_path


def solid_image(width: int = 64, height: int = 64, channels: int = 3) -> RasterImage:
    return RasterImage(
        width=width,
        height=height,
        channels=channels,
        pixels=bytes([128]) * (width * height * channels),
    )


class FakeEngine:
    """Scripted engine that records calls and emits progress events."""

    def __init__(
        self,
        *,
        steps: int = 2,
        double_blocks: int = 2,
        single_blocks: int = 10,
        fail_load: bool = False,
        fail_generate: bool = False,
        raise_generate: Exception | None = None,
    ) -> None:
        self.steps = steps
        self.double_blocks = double_blocks
        self.single_blocks = single_blocks
        self.fail_load = fail_load
        self.fail_generate = fail_generate
        self.raise_generate = raise_generate
        self.calls: list[tuple] = []
        self.freed: list[object] = []
        self.freed_images: list[RasterImage] = []
        self.seeds: list[int] = []
        self.params = None
        self.ctx = object()

    def load_model(self, model_dir):
        self.calls.append(("load_model", model_dir))
        if self.fail_load:
            return None
        return self.ctx

    def model_info(self, ctx):
        return "fake engine"

    def set_seed(self, ctx, seed):
        self.calls.append(("set_seed", seed))
        self.seeds.append(seed)

    def last_error(self):
        return "scripted failure"

    def generate(self, ctx, prompt, params, progress=None):
        self.calls.append(("generate", prompt))
        return self._run(params, progress)

    def generate_with_embeddings(self, ctx, embeddings, seq_len, params, progress=None):
        self.calls.append(("generate_with_embeddings", embeddings.shape, seq_len))
        return self._run(params, progress)

    def generate_with_embeddings_and_noise(
        self, ctx, embeddings, seq_len, noise, noise_len, params, progress=None
    ):
        self.calls.append(
            ("generate_with_embeddings_and_noise", embeddings.shape, seq_len, noise_len)
        )
        return self._run(params, progress)

    def img2img(self, ctx, prompt, image, params, progress=None):
        self.calls.append(("img2img", prompt, (image.width, image.height)))
        return self._run(params, progress)

    def free(self, ctx):
        self.calls.append(("free",))
        self.freed.append(ctx)

    def free_image(self, image):
        self.freed_images.append(image)

    def _run(self, params, progress):
        self.params = params
        for step in range(1, self.steps + 1):
            if progress is not None:
                progress.on_step(step, self.steps)
                for index in range(self.double_blocks):
                    progress.on_substep(
                        SubstepKind.DOUBLE_BLOCK, index, self.double_blocks
                    )
                for index in range(self.single_blocks):
                    progress.on_substep(
                        SubstepKind.SINGLE_BLOCK, index, self.single_blocks
                    )
                progress.on_substep(SubstepKind.FINAL_LAYER, 0, 1)
        if self.raise_generate is not None:
            raise self.raise_generate
        if self.fail_generate:
            return None
        return solid_image(params.width, params.height)


@pytest.fixture()
def fake_engine() -> FakeEngine:
    return FakeEngine()
