from .registry import DEFAULT_MODEL_ID, MODEL_REGISTRY, ModelInfo, get_model, list_models

__all__ = ["DEFAULT_MODEL_ID", "MODEL_REGISTRY", "ModelInfo", "get_model", "list_models"]
