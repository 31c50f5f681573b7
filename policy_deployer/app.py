import os
from configparser import ConfigParser
from logging.config import dictConfig

from policy_deployer.utils.logging import JsonFormatter

BASE_CONFIG_FILENAME = os.path.join(os.path.dirname(__file__), "config", "base.ini")


def map_config(config):
    return {
        **config["default"],
        "AZURE_REQUEST_TIMEOUT": config.getint("default", "AZURE_REQUEST_TIMEOUT"),
        "LOG_JSON": config.getboolean("default", "LOG_JSON"),
        "LOG_LEVEL": config.get("default", "LOG_LEVEL").upper(),
    }


def make_config(direct_config=None):
    """Assemble a ConfigParser object to pass to map_config

    Configuration values are applied in the following order. At each step,
    options that are currently set are overwritten by options of the same name:
    1. The base config file, `config/base.ini`
    2. Optionally: If an OVERRIDE_CONFIG_DIRECTORY environment variable is
        present, configuration files in that directory
    3. Environment variables
    4. Optionally: A dictionary passed in as the `direct_config` parameter
    """

    config = ConfigParser(allow_no_value=True)
    config.optionxform = str
    config.read(BASE_CONFIG_FILENAME)

    OVERRIDE_CONFIG_DIRECTORY = os.getenv("OVERRIDE_CONFIG_DIRECTORY")
    if OVERRIDE_CONFIG_DIRECTORY:
        apply_config_from_directory(OVERRIDE_CONFIG_DIRECTORY, config)

    apply_config_from_environment(config)

    if direct_config:
        config.read_dict(direct_config)

    return map_config(config)


def apply_config_from_directory(config_dir, config, section="default"):
    """Files named after a known setting override it with their contents."""
    for setting in os.listdir(config_dir):
        if setting in config.options(section):
            full_path = os.path.join(config_dir, setting)
            with open(full_path, "r") as conf_file:
                config.set(section, setting, conf_file.read().strip())

    return config


def apply_config_from_environment(config, section="default"):
    for setting in config.options(section):
        override = os.getenv(setting.upper())
        if override:
            config.set(section, setting, override)

    return config


def apply_logger(config):
    # stdout carries deployment results, so logs go to stderr
    if config["LOG_JSON"]:
        formatter = {"()": lambda *a, **k: JsonFormatter()}
    else:
        formatter = {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "default",
                }
            },
            "root": {"level": config["LOG_LEVEL"], "handlers": ["stderr"]},
        }
    )
