"""
MkDocs plugin that ships man pages alongside the built site.

After the site is built, every configured Doxygen XML file is turned into
troff pages under ``<site_dir>/<output_dir>``.
"""

from __future__ import annotations

import logging
import os

from mkdocs.plugins import BasePlugin

from .config import ManPageConfig
from .generate import generate

log = logging.getLogger("mkdocs.plugins.doxyman")


def _resolve(path, base):
    if not path or os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(base, path))


class ManPagePlugin(BasePlugin[ManPageConfig]):

    def __init__(self):
        super().__init__()
        self._options = {}

    def on_config(self, config, **kwargs):
        config_dir = os.path.dirname(config.get("config_file_path", "") or "") or os.getcwd()
        self._options = dict(self.config)
        self._options["xml_dir"] = _resolve(self.config["xml_dir"], config_dir)
        self._options["header_src_dir"] = _resolve(self.config["header_src_dir"], config_dir)
        # print_ascii would write into the build log, never useful here
        self._options["print_ascii"] = False
        if not self.config["xml_files"]:
            log.warning("doxyman: no xml_files configured, no man pages will be generated")
        return config

    def on_post_build(self, *, config, **kwargs):
        if not self._options.get("xml_files"):
            return
        options = dict(self._options)
        options["output_dir"] = _resolve(self.config["output_dir"], config["site_dir"])
        summary = generate(options)
        log.info(
            "doxyman: %d man pages written to %s from %d files",
            summary.pages,
            options["output_dir"],
            summary.files,
        )
        if not summary.ok:
            log.warning(
                "doxyman: %d input files and %d pages failed",
                len(summary.failed_files),
                len(summary.failed_pages),
            )
