"""Free-model registry: filters the catalogue and hands out models per slot."""

from tenthman.models import ModelInfo

DEFAULT_FREE_MODELS: list[ModelInfo] = [
    ModelInfo("qwen/qwen3-235b-a22b:free", "Qwen3 235B A22B", "0", "0"),
    ModelInfo("google/gemma-3n-e2b-it:free", "Gemma 3n 2B", "0", "0"),
    ModelInfo("nvidia/nemotron-nano-9b-v2:free", "Nemotron Nano 9B V2", "0", "0"),
    ModelInfo("qwen/qwen3-coder:free", "Qwen3 Coder 480B A35B", "0", "0"),
    ModelInfo("openai/gpt-oss-120b:free", "GPT OSS 120B", "0", "0"),
]


class ModelRegistry:
    """Keeps only models whose prompt and completion prices are both "0"."""

    def __init__(self, models: list[ModelInfo]) -> None:
        self._free = [m for m in models if m.is_free]

    def free_models(self) -> list[ModelInfo]:
        return list(self._free)

    def select(self, n: int) -> list[ModelInfo]:
        """Return n models, cycling through the free list when n exceeds it."""
        if not self._free:
            return []
        return [self._free[i % len(self._free)] for i in range(n)]
