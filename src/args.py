"""Argument parsing functionality for the plugin update checker."""

import argparse


def build_parser():
    """Build the argument parser (exposed separately for tests)."""
    parser = argparse.ArgumentParser(
        prog="plugin-updater",
        description=(
            "Check a GitHub repository for a newer release of a plugin"
        ),
        add_help=True,
    )

    parser.add_argument("-p", "--plugin",
                        dest="PLUGIN",
                        help="Plugin file reference, e.g. my-plugin/my-plugin.php",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-r", "--repository",
                        dest="REPOSITORY",
                        help="GitHub repository in the form owner/repo",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-i", "--installed-version",
                        dest="INSTALLED_VERSION",
                        help="Currently installed plugin version",
                        action="store", type=str,
                        default="0")
    parser.add_argument("--host-version",
                        dest="HOST_VERSION",
                        help="Host version used for the minimum-version check",
                        action="store", type=str,
                        default="")
    parser.add_argument("--info",
                        dest="INFO",
                        help="Print the full plugin information instead of the update decision.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING')
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
