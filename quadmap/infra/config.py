import json
import os
from pathlib import Path

from quadmap.schemas import TransformerConfig

CFG_ENV_VAR = "QUADMAP_CFG_JSON"


def load_cfg_from_file(path: str) -> TransformerConfig:
    data = json.loads(Path(path).read_text())
    return TransformerConfig(**data)


def load_cfg_from_env() -> TransformerConfig:
    raw = os.getenv(CFG_ENV_VAR)
    if not raw:
        raise RuntimeError(f"{CFG_ENV_VAR} not set")
    return TransformerConfig(**json.loads(raw))
