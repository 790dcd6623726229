import os
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, ValidationError
from requests_toolbelt.sessions import BaseUrlSession


class Config(BaseModel):
    api_url: str = "http://localhost:8100"


class Ctx(BaseModel):
    """Everything a pio subcommand receives through click's ctx.obj"""

    config: Config
    configPath: str
    session: BaseUrlSession

    model_config = ConfigDict(arbitrary_types_allowed=True)


def getctx(ctx: Dict[str, Any]) -> Ctx:
    return Ctx(**ctx)


def save(ctx: Ctx):
    os.makedirs(os.path.dirname(ctx.configPath), exist_ok=True)
    with open(ctx.configPath, "w") as out:
        out.write(ctx.config.model_dump_json())


def load_config(path: str) -> Config:
    """Saved config, or defaults when the file is missing or unreadable"""
    try:
        with open(path) as config_file:
            return Config.model_validate_json(config_file.read())
    except (OSError, ValidationError):
        return Config()
