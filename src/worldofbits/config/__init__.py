from .loader import WorldConfig, load_world_config

__all__ = ["WorldConfig", "load_world_config"]
