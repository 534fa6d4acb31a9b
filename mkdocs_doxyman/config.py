"""
Configuration schema shared by the ``doxyman`` MkDocs plugin and the
``doxygen2man`` command line tool.
"""

from __future__ import annotations

import logging

from mkdocs.config import config_options
from mkdocs.config.base import Config as MkDocsConfig

log = logging.getLogger("mkdocs.plugins.doxyman")


class ConfigError(Exception):
    pass


class ManPageConfig(MkDocsConfig):
    xml_dir = config_options.Type(str, default="./xml/")
    xml_files = config_options.Type(list, default=[])
    output_dir = config_options.Type(str, default="./")
    man_section = config_options.Type(int, default=3)
    package_name = config_options.Type(str, default="Package")
    company = config_options.Type(str, default="Red Hat")
    header = config_options.Type(str, default="Programmer's Manual")
    headerfile = config_options.Type(str, default="")
    header_prefix = config_options.Type(str, default="")
    header_src_dir = config_options.Type(str, default="./")
    use_header_copyright = config_options.Type(bool, default=False)
    start_year = config_options.Type(int, default=2010)
    manpage_year = config_options.Type(int, default=0)
    manpage_date = config_options.Type(str, default="")
    print_man = config_options.Type(bool, default=True)
    print_ascii = config_options.Type(bool, default=False)
    print_params = config_options.Type(bool, default=False)
    print_general = config_options.Type(bool, default=False)


def load_config(options):
    """Validate a plain dict of options into a :class:`ManPageConfig`."""
    cfg = ManPageConfig()
    cfg.load_dict(options)
    errors, warnings = cfg.validate()
    for key, msg in warnings:
        log.warning("doxyman: config option '%s': %s", key, msg)
    if errors:
        raise ConfigError("; ".join(f"{key}: {msg}" for key, msg in errors))
    return cfg
