"""
Drives a full run: index each main XML file, render its pages, write them.

Each input file is handled to completion (both passes, then rendering)
before the next one starts. A broken input file or an unwritable page is
logged and counted; the run always carries on.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone

from lxml import etree

from .index import build_index
from .parser import DoxygenXMLError
from .renderer import RenderConfig, page_filename, render_ascii, render_manpage

log = logging.getLogger("mkdocs.plugins.doxyman")

_COPYRIGHT_RE = re.compile(r"Copyright\b.*")


@dataclass
class RunSummary:
    files: int = 0
    pages: int = 0
    failed_files: list[str] = field(default_factory=list)
    failed_pages: list[str] = field(default_factory=list)

    @property
    def ok(self):
        return not self.failed_files and not self.failed_pages


def _build_time():
    epoch = os.environ.get("SOURCE_DATE_EPOCH", "")
    if epoch:
        try:
            return datetime.fromtimestamp(int(epoch), tz=timezone.utc)
        except (ValueError, OverflowError):
            log.warning("doxyman: ignoring bad SOURCE_DATE_EPOCH %r", epoch)
    return datetime.now(tz=timezone.utc)


def manpage_date(cfg):
    """Return ``(date_text, year)`` for the page header and copyright line."""
    when = _build_time()
    date_text = cfg["manpage_date"] or when.strftime("%Y-%m-%d")
    year = cfg["manpage_year"] or when.year
    return date_text, year


def read_header_copyright(filepath):
    try:
        with open(filepath, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                m = _COPYRIGHT_RE.search(line)
                if m:
                    return m.group(0).rstrip().removesuffix("*/").rstrip()
    except OSError as exc:
        log.warning("doxyman: cannot read header %s: %s", filepath, exc)
    return None


def copyright_line(cfg, headerfile, year):
    if cfg["use_header_copyright"] and headerfile:
        found = read_header_copyright(os.path.join(cfg["header_src_dir"], headerfile))
        if found:
            return found
    start = cfg["start_year"]
    years = f"{start}-{year}" if start and start != year else f"{year}"
    return f"Copyright (C) {years} {cfg['company']}, Inc. All rights reserved."


def write_page(path, text):
    """Write one page; returns False (and logs) when the file can't be created."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as exc:
        log.error("doxyman: cannot write %s: %s", path, exc)
        return False
    return True


def process_file(xml_file, cfg, summary, out=None):
    if out is None:
        out = sys.stdout
    xml_path = os.path.join(cfg["xml_dir"], xml_file)
    summary.files += 1
    try:
        index = build_index(xml_path, cfg["xml_dir"])
    except (etree.XMLSyntaxError, DoxygenXMLError, OSError) as exc:
        log.error("doxyman: cannot process %s: %s", xml_path, exc)
        summary.failed_files.append(xml_file)
        return

    headerfile = cfg["headerfile"] or index.compound_name
    date_text, year = manpage_date(cfg)
    rcfg = RenderConfig(
        section=cfg["man_section"],
        date=date_text,
        package_name=cfg["package_name"],
        header=cfg["header"],
        headerfile=headerfile,
        header_prefix=cfg["header_prefix"],
        copyright=copyright_line(cfg, headerfile, year),
        print_params=cfg["print_params"],
    )

    pages = [(fn, False) for fn in index.functions]
    general = index.general
    if cfg["print_general"] and general is not None:
        pages.append((general, True))

    for fn, is_general in pages:
        if cfg["print_ascii"]:
            print(render_ascii(fn), file=out)
        if not cfg["print_man"]:
            continue
        path = os.path.join(cfg["output_dir"], page_filename(fn.name, cfg["man_section"]))
        if write_page(path, render_manpage(fn, index, rcfg, general=is_general)):
            summary.pages += 1
        else:
            summary.failed_pages.append(path)

    log.info("doxyman: %s: %d functions", xml_file, len(index.functions))


def generate(cfg, out=None):
    """Process every configured XML file and return a :class:`RunSummary`."""
    summary = RunSummary()
    if cfg["print_man"]:
        try:
            os.makedirs(cfg["output_dir"], exist_ok=True)
        except OSError as exc:
            log.error("doxyman: cannot create output directory %s: %s", cfg["output_dir"], exc)
    for xml_file in cfg["xml_files"]:
        process_file(xml_file, cfg, summary, out=out)
    return summary
