import os
import re
from typing import Any, Dict, Optional

import yaml

from graphsql.utils.logging import logger

# Pattern to match ${VAR} or ${env:VAR}
# Captures the variable name in group 1
ENV_PATTERN = re.compile(r"\$\{(?:env:)?([A-Za-z0-9_]+)\}")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override dictionary into base dictionary.

    Dicts are merged recursively, every other value is overwritten.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            logger.debug("Deep merging nested dictionary", key=key)
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_with_env(path: str, env: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML file with environment variable substitution and imports.

    Supports:
    - ${VAR_NAME} substitution
    - 'imports' list of relative paths
    - 'environments' overrides based on env param
    - a sibling env.{env}.yaml overlay

    Args:
        path: Path to YAML file
        env: Environment name (e.g., 'prod', 'dev') to apply overrides

    Returns:
        Parsed dictionary (merged with imports and env overrides)

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If environment variable is missing
        yaml.YAMLError: If YAML parsing fails
    """
    logger.debug("Loading YAML configuration", path=path, env=env)

    if not os.path.exists(path):
        logger.error("Configuration file not found", path=path)
        raise FileNotFoundError(f"YAML file not found: {path}")

    abs_path = os.path.abspath(path)
    base_dir = os.path.dirname(abs_path)

    with open(abs_path, "r", encoding="utf-8") as f:
        content = f.read()

    def replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            logger.error(
                "Missing required environment variable",
                variable=var_name,
                file=abs_path,
            )
            raise ValueError(f"Missing environment variable: {var_name}")
        return value

    substituted_content = ENV_PATTERN.sub(replace_env, content)

    try:
        data = yaml.safe_load(substituted_content) or {}
    except yaml.YAMLError as e:
        logger.error("YAML parsing failed", path=abs_path, error=str(e))
        raise

    if not isinstance(data, dict):
        raise ValueError(f"Top level of {abs_path} must be a mapping")

    imports = data.pop("imports", [])
    if imports:
        if isinstance(imports, str):
            imports = [imports]

        merged_data = data.copy()
        for import_path in imports:
            if not os.path.isabs(import_path):
                full_import_path = os.path.join(base_dir, import_path)
            else:
                full_import_path = import_path

            if not os.path.exists(full_import_path):
                logger.error(
                    "Imported configuration file not found",
                    import_path=import_path,
                    parent_file=abs_path,
                )
                raise FileNotFoundError(f"Imported YAML file not found: {full_import_path}")

            try:
                imported_data = load_yaml_with_env(full_import_path, env=env)
            except Exception as e:
                raise ValueError(
                    f"Failed to load import '{import_path}' (resolved: {full_import_path}): {e}"
                ) from e

            # The importing file wins over what it imports
            merged_data = _deep_merge(imported_data, merged_data)

        data = merged_data

    environments = data.pop("environments", {}) or {}
    if not isinstance(environments, dict):
        raise ValueError(f"'environments' in {abs_path} must be a mapping")

    if env:
        if env in environments:
            # An empty block under the env name is a no-op override
            override = environments[env] or {}
            if not isinstance(override, dict):
                raise ValueError(f"Environment '{env}' in {abs_path} must be a mapping")
            logger.debug("Applying environment overrides", env=env)
            data = _deep_merge(data, override)

        env_file_path = os.path.join(base_dir, f"env.{env}.yaml")
        if os.path.exists(env_file_path):
            logger.debug("Loading external environment override file", env_file=env_file_path)
            data = _deep_merge(data, load_yaml_with_env(env_file_path, env=None))

    logger.debug("Configuration loading complete", path=path, final_keys=list(data.keys()))
    return data
