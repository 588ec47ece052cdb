from dataclasses import fields

from revdiff.config import Config
from revdiff.messages import info, success

def check_config(config: Config) -> None:
    if config.source is None:
        info("No .revdiff.toml found, using defaults")
    else:
        info(f"Configuration from {config.source}")
    for f in fields(config):
        if f.name != 'source':
            print(f"    {f.name} = {getattr(config, f.name)}")
    success("Config is valid")
