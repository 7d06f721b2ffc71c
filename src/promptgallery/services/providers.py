"""Generative image providers.

An :class:`ImageProvider` turns a prompt into PNG bytes.  Two providers are
available:

- :class:`BedrockImageProvider` calls the Amazon Titan image generator
  through the ``bedrock-runtime`` API with a fixed 512x512 TEXT_IMAGE
  request.
- :class:`DiffusersImageProvider` runs a HuggingFace diffusers pipeline
  in-process.  ``torch`` and ``diffusers`` are imported lazily so that the
  service starts without them when Bedrock is used.

Use :func:`build_image_provider` to pick one from configuration.
"""

from __future__ import annotations

import base64
import binascii
import gc
import io
import json
import logging
from abc import ABC, abstractmethod

from promptgallery.core.config import GalleryConfig
from promptgallery.services.errors import ProviderError

logger = logging.getLogger(__name__)


class ImageProvider(ABC):
    """Interface for prompt-to-image backends."""

    name: str = "base"

    @abstractmethod
    def generate(self, prompt: str) -> bytes:
        """Render *prompt* and return the image encoded as PNG.

        Raises:
            ProviderError: If the backend fails or returns no image.
        """

    def close(self) -> None:
        """Release any resources held by the provider."""


class BedrockImageProvider(ImageProvider):
    """Titan image generation through Amazon Bedrock.

    Attributes:
        model_id: Bedrock model identifier.
        width: Output width in pixels.
        height: Output height in pixels.
        cfg_scale: Prompt adherence.
        seed: Fixed generation seed.
        quality: ``"standard"`` or ``"premium"``.
    """

    name = "bedrock"

    def __init__(
        self,
        model_id: str,
        *,
        region: str = "us-east-1",
        width: int = 512,
        height: int = 512,
        cfg_scale: float = 8.0,
        seed: int = 0,
        quality: str = "standard",
        client=None,
    ) -> None:
        if client is None:
            import boto3

            client = boto3.client("bedrock-runtime", region_name=region)
        self._client = client
        self.model_id = model_id
        self.width = width
        self.height = height
        self.cfg_scale = cfg_scale
        self.seed = seed
        self.quality = quality

    def build_request(self, prompt: str) -> dict:
        """Build the TEXT_IMAGE request body for *prompt*."""
        return {
            "taskType": "TEXT_IMAGE",
            "textToImageParams": {"text": prompt},
            "imageGenerationConfig": {
                "numberOfImages": 1,
                "height": self.height,
                "width": self.width,
                "cfgScale": self.cfg_scale,
                "seed": self.seed,
                "quality": self.quality,
            },
        }

    def generate(self, prompt: str) -> bytes:
        body = json.dumps(self.build_request(prompt))
        logger.info("Invoking Bedrock model '%s'.", self.model_id)

        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=body,
                accept="application/json",
                contentType="application/json",
            )
            payload = json.loads(response["body"].read())
        except Exception as e:
            logger.exception("Bedrock invocation failed for model '%s'.", self.model_id)
            raise ProviderError(f"Bedrock invocation failed: {e}") from e

        images = payload.get("images") if isinstance(payload, dict) else None
        if not images:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise ProviderError(f"Bedrock returned no image: {error or 'empty response'}")

        try:
            return base64.b64decode(images[0], validate=True)
        except (binascii.Error, TypeError) as e:
            raise ProviderError("Bedrock returned an image that is not valid base64") from e


# ---------------------------------------------------------------------------
# Dtype string -> torch dtype mapping, built on first use so that torch is
# not imported at module level.
# ---------------------------------------------------------------------------
_DTYPE_MAP: dict | None = None


def _get_dtype_map() -> dict:
    global _DTYPE_MAP
    if _DTYPE_MAP is None:
        import torch

        _DTYPE_MAP = {
            "bfloat16": torch.bfloat16,
            "float16": torch.float16,
            "float32": torch.float32,
        }
    return _DTYPE_MAP


class DiffusersImageProvider(ImageProvider):
    """Local text-to-image generation with a diffusers pipeline.

    The pipeline is loaded on the first :meth:`generate` call and kept in
    memory until :meth:`close`.  Every call creates a fresh seeded
    ``torch.Generator`` so the same prompt and seed reproduce the same
    image.  Turbo-distilled models (model ID containing ``"turbo"``) run
    with ``guidance_scale`` 0.0.
    """

    name = "diffusers"

    def __init__(
        self,
        model_id: str,
        *,
        device: str = "cuda",
        torch_dtype: str = "bfloat16",
        cache_dir: str | None = None,
        width: int = 512,
        height: int = 512,
        steps: int = 4,
        guidance_scale: float = 8.0,
        seed: int = 0,
    ) -> None:
        self.model_id = model_id
        self.device = device
        self.torch_dtype = torch_dtype
        self.cache_dir = cache_dir
        self.width = width
        self.height = height
        self.steps = steps
        self.guidance_scale = guidance_scale
        self.seed = seed
        self._pipeline = None

    @property
    def is_loaded(self) -> bool:
        """Whether the pipeline is currently in memory."""
        return self._pipeline is not None

    def load(self) -> None:
        """Load the pipeline if it is not loaded yet.

        Raises:
            ProviderError: If the model cannot be loaded.
        """
        if self._pipeline is not None:
            return

        import torch
        from diffusers import AutoPipelineForText2Image

        torch_dtype = _get_dtype_map().get(self.torch_dtype, torch.bfloat16)
        logger.info(
            "Loading model '%s' (dtype=%s, device=%s).",
            self.model_id,
            self.torch_dtype,
            self.device,
        )

        try:
            pipeline = AutoPipelineForText2Image.from_pretrained(
                self.model_id,
                torch_dtype=torch_dtype,
                cache_dir=self.cache_dir,
            )
            self._pipeline = pipeline.to(self.device)
        except Exception as e:
            self._pipeline = None
            logger.exception("Failed to load model '%s'.", self.model_id)
            raise ProviderError(f"Failed to load model '{self.model_id}': {e}") from e

        logger.info("Model '%s' loaded.", self.model_id)

    def generate(self, prompt: str) -> bytes:
        self.load()

        import torch

        guidance_scale = self.guidance_scale
        if "turbo" in self.model_id.lower():
            guidance_scale = 0.0

        generator = torch.Generator(device=self.device).manual_seed(self.seed)

        try:
            output = self._pipeline(
                prompt=prompt,
                width=self.width,
                height=self.height,
                num_inference_steps=self.steps,
                guidance_scale=guidance_scale,
                generator=generator,
            )
            image = output.images[0]
        except Exception as e:
            logger.exception("Pipeline run failed for model '%s'.", self.model_id)
            raise ProviderError(f"Image generation failed: {e}") from e

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def close(self) -> None:
        """Drop the pipeline and free CUDA memory when available."""
        if self._pipeline is None:
            return

        logger.info("Unloading model '%s'.", self.model_id)
        self._pipeline = None
        gc.collect()

        try:
            import torch

            if torch.cuda.is_available():
                torch.cuda.empty_cache()
        except ImportError:
            pass


def build_image_provider(cfg: GalleryConfig) -> ImageProvider:
    """Instantiate the provider selected by ``cfg.image_provider``."""
    if cfg.image_provider == "diffusers":
        return DiffusersImageProvider(
            cfg.diffusers_model_id,
            device=cfg.device,
            torch_dtype=cfg.torch_dtype,
            cache_dir=str(cfg.models_dir),
            width=cfg.image_width,
            height=cfg.image_height,
            steps=cfg.num_inference_steps,
            guidance_scale=cfg.cfg_scale,
            seed=cfg.generation_seed,
        )
    return BedrockImageProvider(
        cfg.bedrock_model_id,
        region=cfg.aws_region,
        width=cfg.image_width,
        height=cfg.image_height,
        cfg_scale=cfg.cfg_scale,
        seed=cfg.generation_seed,
        quality=cfg.image_quality,
    )
