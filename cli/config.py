"""
ftgov CLI settings

Layered settings (defaults, profile, file, environment) and their
conversion into RPC transport and governance role objects.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from governance.roles import GovernanceRoles
from network.rpc import RPCConfig

# Settings files searched in order; the first one found is used
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.ftgov.yml',
    Path.cwd() / '.ftgov.json',
    Path.home() / '.ftgov' / 'config.yml',
    Path.home() / '.ftgov' / 'config.json',
]

ENV_PREFIX = 'FTGOV_'

# Built-in settings, the lowest layer
DEFAULT_CONFIG = {
    'rpc': {
        'url': 'http://localhost:26657',
        'timeout': 30,
        'max_retries': 3,
        'backoff_factor': 1.0,
        'token': None,
    },

    'governance': {
        'proposers': [],
        'authorizers': [],
        'relayers': [],
        'require_ownership_approval': False,
    },

    'signer': {
        'key_file': None,
        'address_prefix': 'ftg1',
    },

    'cli': {
        'output_format': 'table',  # table, json, yaml
        'verbose': 0,
    },
}

# Named overlays selected with --profile
PROFILES = {
    'local': {
        'rpc': {'url': 'http://localhost:26657', 'max_retries': 0},
        'cli': {'verbose': 2},
    },
    'testnet': {
        'governance': {'require_ownership_approval': True},
        'cli': {'verbose': 1},
    },
    'production': {
        'rpc': {'timeout': 60, 'max_retries': 5},
        'governance': {'require_ownership_approval': True},
        'cli': {'verbose': 0},
    },
}

OUTPUT_FORMATS = ['table', 'json', 'yaml']

ROLE_KEYS = ('proposers', 'authorizers', 'relayers')


def merge_layers(*layers: Dict[str, Any]) -> Dict[str, Any]:
    """Merge settings mappings, later layers winning key by key."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = merge_layers(current, value)
            else:
                merged[key] = copy.deepcopy(value)
    return merged


def coerce_env_value(value: str) -> Any:
    """
    Interpret an environment variable.

    JSON literals (numbers, lists, ``null``) are decoded first; ``yes``/``no``
    style flags become booleans and comma separated values become lists of
    addresses. Anything else stays a string.
    """
    try:
        return json.loads(value)
    except ValueError:
        pass

    flag = value.strip().lower()
    if flag in ('true', 'yes', 'on'):
        return True
    if flag in ('false', 'no', 'off'):
        return False
    if ',' in value:
        return [item.strip() for item in value.split(',') if item.strip()]
    return value


def read_settings_file(path: Path) -> Dict[str, Any]:
    """Read a YAML or JSON settings file into a mapping."""
    loaders = {'.yml': yaml.safe_load, '.yaml': yaml.safe_load, '.json': json.load}
    loader = loaders.get(path.suffix)
    if loader is None:
        raise ValueError(f"Unknown config file format: {path}")

    with open(path, 'r') as f:
        data = loader(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


class ConfigurationManager:
    """
    Layered ftgov settings.

    Layers are applied in order: built-in defaults, the selected profile, one
    settings file (explicit, or the first found on the search path), then
    ``FTGOV_*`` environment variables. The merged result is cached until
    ``reset()``.
    """

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None,
                 search_paths: Optional[List[Path]] = None,
                 environ: Optional[Dict[str, str]] = None):
        self.logger = logging.getLogger('ftgov.config')
        self.config_file = config_file
        self.profile = profile
        self.search_paths = CONFIG_SEARCH_PATHS if search_paths is None else search_paths
        self.environ = os.environ if environ is None else environ
        self._merged: Optional[Dict[str, Any]] = None
        self._sources: List[str] = []

    def _layers(self) -> List[Tuple[str, Dict[str, Any]]]:
        layers = [("defaults", DEFAULT_CONFIG)]

        if self.profile:
            if self.profile not in PROFILES:
                raise ValueError(f"Unknown configuration profile: {self.profile}")
            layers.append((f"profile:{self.profile}", PROFILES[self.profile]))

        settings_file = self._settings_file()
        if settings_file is not None:
            self.logger.debug(f"Reading settings from {settings_file}")
            layers.append((f"file:{settings_file}", read_settings_file(settings_file)))

        environment = self._environment_layer()
        if environment:
            layers.append(("environment", environment))
        return layers

    def _settings_file(self) -> Optional[Path]:
        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            return path
        return next((path for path in self.search_paths if path.exists()), None)

    def _environment_layer(self) -> Dict[str, Any]:
        """``FTGOV_RPC_MAX_RETRIES=7`` becomes ``{'rpc': {'max_retries': 7}}``."""
        layer: Dict[str, Any] = {}
        for name, raw in self.environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            section, _, option = name[len(ENV_PREFIX):].lower().partition('_')
            if section not in DEFAULT_CONFIG or not option:
                self.logger.debug(f"Ignoring environment variable {name}")
                continue
            layer.setdefault(section, {})[option] = coerce_env_value(raw)
        return layer

    def load(self) -> Dict[str, Any]:
        """Return the merged settings, building them on first use."""
        if self._merged is None:
            layers = self._layers()
            self._sources = [source for source, _ in layers]
            self._merged = merge_layers(*(settings for _, settings in layers))
            expand_paths(self._merged)
        return self._merged

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``rpc.url``."""
        node: Any = self.load()
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set(self, key_path: str, value: Any):
        """Override a dotted key in the merged settings."""
        *parents, leaf = key_path.split('.')
        node = self.load()
        for key in parents:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[leaf] = value

    def save(self, path: Optional[str] = None, format: str = 'yaml'):
        """Write the merged settings to ``path`` (default: project file)."""
        target = Path(path) if path else Path.cwd() / f".ftgov.{'yml' if format == 'yaml' else 'json'}"
        target.parent.mkdir(parents=True, exist_ok=True)

        with open(target, 'w') as f:
            if format == 'yaml':
                yaml.safe_dump(self.load(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.load(), f, indent=2)

        self.logger.info(f"Configuration saved to {target}")

    def validate(self) -> List[str]:
        """Return a list of problems with the merged settings."""
        problems = []

        url = self.get('rpc.url')
        if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
            problems.append(f"Invalid RPC url: {url}")
        timeout = self.get('rpc.timeout')
        if not isinstance(timeout, int) or timeout <= 0:
            problems.append("RPC timeout must be a positive integer")
        retries = self.get('rpc.max_retries')
        if not isinstance(retries, int) or retries < 0:
            problems.append("RPC max_retries must be a non-negative integer")

        for role in ROLE_KEYS:
            members = self.get(f'governance.{role}')
            if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
                problems.append(f"governance.{role} must be a list of addresses")
        if not isinstance(self.get('governance.require_ownership_approval'), bool):
            problems.append("governance.require_ownership_approval must be a boolean")

        output_format = self.get('cli.output_format')
        if output_format not in OUTPUT_FORMATS:
            problems.append(f"Invalid output format: {output_format}")

        return problems

    def get_sources(self) -> List[str]:
        """Names of the layers that made up the merged settings."""
        self.load()
        return list(self._sources)

    def rpc_config(self) -> RPCConfig:
        """Transport settings for the node, with the bearer token applied."""
        section = dict(self.get('rpc', {}))
        rpc_config = RPCConfig.from_dict(section)
        rpc_config.headers.update(RPCConfig.auth_headers(section.get('token')))
        return rpc_config

    def governance_roles(self) -> GovernanceRoles:
        return GovernanceRoles.from_config(self.get('governance', {}))

    def reset(self):
        """Drop the merged settings so the next access reloads every layer."""
        self._merged = None
        self._sources = []


def expand_paths(settings: Dict[str, Any]):
    """Expand ``~`` and ``$VARS`` in ``*_file`` / ``*_dir`` values in place."""
    for key, value in settings.items():
        if isinstance(value, dict):
            expand_paths(value)
        elif isinstance(value, str) and key.endswith(('_file', '_dir')):
            settings[key] = os.path.expanduser(os.path.expandvars(value))
