"""Command-line update check for a GitHub-hosted plugin."""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, Optional

import yaml

from args import parse_args
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from metadata.models import ConfigurationError
from updater import PluginUpdater

logger = logging.getLogger(__name__)


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load updater options from a YAML or JSON file.

    A top-level ``updater`` section is used when present.

    Raises:
        ConfigurationError: if the file is missing, unreadable or not a mapping.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {path}")
    section = data.get("updater", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'updater' section must be a mapping: {path}")
    return section


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main"),
        )

    try:
        options = load_config_file(args.CONFIG)
        updater = PluginUpdater.get_instance(args.PLUGIN, args.REPOSITORY, options)
    except ConfigurationError as e:
        logger.error("%s", e)
        return ExitCodes.CONFIG_ERROR.value

    if args.INFO:
        info = updater.plugin_information(updater.identity.slug)
        if info is None:
            logger.error("No plugin information available for %s", args.REPOSITORY)
            return ExitCodes.RESOLUTION_FAILED.value
        print(json.dumps(info.to_dict(), indent=2))
        return ExitCodes.SUCCESS.value

    metadata = updater.resolve_metadata()
    if metadata is None:
        logger.error("No update information available for %s", args.REPOSITORY)
        return ExitCodes.RESOLUTION_FAILED.value

    decision = updater.gate.decide(
        updater.identity, metadata, args.INSTALLED_VERSION, args.HOST_VERSION
    )
    if decision is None:
        print(json.dumps({"available": False, "latest_version": metadata.version}, indent=2))
        return ExitCodes.NO_UPDATE.value

    print(json.dumps(decision.to_dict(), indent=2))
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
