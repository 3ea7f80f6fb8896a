"""
Bundled RBAC policy presets.

Each preset is a YAML policy file shipped next to this module. Presets are
plain data: they go through the same loader and validator as any other
policy. Add a new preset by dropping a YAML file here and registering it in
PRESETS; the preset tests pick it up automatically.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from rbac_engine.checker import RBACChecker, must_new
from rbac_engine.config import Config, load_rbac_config

PRESET_DIR = os.path.dirname(os.path.abspath(__file__))


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    filename: str

    @property
    def path(self) -> str:
        return os.path.join(PRESET_DIR, self.filename)

    def load(self) -> Config:
        return load_rbac_config(self.path)


PRESETS = (
    Preset("file_management", "File management service", "file_management.yaml"),
    Preset("cms", "Content management system", "cms.yaml"),
    Preset("ecommerce", "E-commerce back office", "ecommerce.yaml"),
    Preset("project_management", "Project management", "project_management.yaml"),
    Preset("saas", "Multi-tenant SaaS platform", "saas.yaml"),
)


def all_presets() -> List[Preset]:
    return list(PRESETS)


def _find(name: str) -> Preset:
    for preset in PRESETS:
        if preset.name == name:
            return preset
    raise KeyError(f"Unknown RBAC preset '{name}'. Available: {', '.join(p.name for p in PRESETS)}")


def get_preset(name: str) -> Config:
    """
    Load the Config of a bundled preset.

    Raises:
        KeyError: If no preset has that name
    """
    return _find(name).load()


@lru_cache(maxsize=None)
def preset_checker(name: str) -> RBACChecker:
    """
    Shared checker for a bundled preset.

    Presets are known-good, so an invalid one terminates the process
    (see must_new). Checkers are immutable, so one instance per name is
    reused.
    """
    return must_new(get_preset(name))
