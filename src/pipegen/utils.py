import functools
import asyncio
from typing import Dict, List, Optional

import click


def async_click(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return asyncio.run(func(*args, **kwargs))
    return wrapper


def split_csv(value: Optional[str]) -> List[str]:
    """
    "build, test,,deploy" -> ["build", "test", "deploy"]
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_key_value_pairs(value: Optional[str]) -> Dict[str, str]:
    """
    Разбирает строку вида KEY=VALUE,KEY2=VALUE2.
    Значение может содержать '=', ключ - нет.
    """
    pairs: Dict[str, str] = {}
    for item in split_csv(value):
        key, sep, val = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(
                f"Invalid variable format '{item}'. Use KEY=VALUE",
                param_hint="--variables",
            )
        pairs[key.strip()] = val.strip()
    return pairs


def parse_environments(value: Optional[str]) -> List[Dict[str, str]]:
    """
    Разбирает строку вида name:url,name2 в список окружений.
    URL сам содержит ':', поэтому режем только по первому двоеточию.
    """
    environments: List[Dict[str, str]] = []
    for item in split_csv(value):
        name, sep, url = item.partition(":")
        if not name.strip():
            raise click.BadParameter(
                f"Invalid environment format '{item}'. Use name:url",
                param_hint="--environments",
            )
        environment = {"name": name.strip()}
        if sep and url.strip():
            environment["url"] = url.strip()
        environments.append(environment)
    return environments
