#!/usr/bin/env python3
"""
Generate API man pages from Doxygen XML.

Run doxygen on a header first, then point this at the XML file it wrote for
that header (usually ``<header>_8h.xml``) and the directory holding the
companion struct files. One ``<function>.<section>`` page is written per
documented function.

Usage:
    doxygen2man -d xml/ -o man/ qbipcs_8h.xml
    doxygen2man -d xml/ -p libqb -i qb/ -g -P qbipcs_8h.xml qbloop_8h.xml
    python -m mkdocs_doxyman.cli -a -d xml/ qbipcs_8h.xml
"""

import argparse
import logging
import sys

from .config import ConfigError, load_config
from .generate import generate


def build_parser():
    p = argparse.ArgumentParser(
        prog="doxygen2man", description="Convert Doxygen XML files to man pages"
    )
    p.add_argument("xml_files", nargs="+", help="Main Doxygen XML file(s), relative to --xml-dir")
    p.add_argument(
        "-a", "--print-ascii", action="store_true", help="Print ASCII dump of man pages to stdout"
    )
    p.add_argument(
        "-m", "--print-man", action="store_true", help="Write man page files to <output-dir>"
    )
    p.add_argument("-P", "--print-params", action="store_true", help="Print PARAMS section")
    p.add_argument(
        "-g",
        "--print-general",
        action="store_true",
        help="Print general man page for the whole header file",
    )
    p.add_argument("-q", "--quiet", action="store_true", help="Run quietly, no progress info")
    p.add_argument(
        "-c",
        "--use-header-copyright",
        action="store_true",
        help="Use the Copyright line from the header file (if one can be found)",
    )
    p.add_argument(
        "-I", "--headerfile", default="", help="Set include filename (default taken from XML)"
    )
    p.add_argument("-i", "--header-prefix", default="", help="Prefix for include file, eg qb/")
    p.add_argument(
        "-s", "--section", type=int, default=3, help="Write man pages into section <section>"
    )
    p.add_argument(
        "-S", "--start-year", type=int, default=2010, help="Start year for the copyright line"
    )
    p.add_argument("-d", "--xml-dir", default="./xml/", help="Directory for XML files")
    p.add_argument(
        "-D", "--manpage-date", default="", help="Date to print at top of man pages (not checked)"
    )
    p.add_argument(
        "-Y", "--manpage-year", type=int, default=0, help="Year to print at end of copyright line"
    )
    p.add_argument("-p", "--package-name", default="Package", help="Name of package")
    p.add_argument("-C", "--company", default="Red Hat", help="Company for the copyright line")
    p.add_argument("-H", "--header-name", default="Programmer's Manual", help="Header text")
    p.add_argument("-o", "--output-dir", default="./", help="Write all man pages to <dir>")
    p.add_argument(
        "-O",
        "--header-src-dir",
        default="./",
        help="Directory for the original header files (needed by -c)",
    )
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        format="%(levelname)s: %(message)s",
        level=logging.WARNING if args.quiet else logging.INFO,
    )

    try:
        cfg = load_config(
            {
                "xml_dir": args.xml_dir,
                "xml_files": args.xml_files,
                "output_dir": args.output_dir,
                "man_section": args.section,
                "package_name": args.package_name,
                "company": args.company,
                "header": args.header_name,
                "headerfile": args.headerfile,
                "header_prefix": args.header_prefix,
                "header_src_dir": args.header_src_dir,
                "use_header_copyright": args.use_header_copyright,
                "start_year": args.start_year,
                "manpage_year": args.manpage_year,
                "manpage_date": args.manpage_date,
                # With neither -a nor -m, writing pages is the useful default
                "print_man": args.print_man or not args.print_ascii,
                "print_ascii": args.print_ascii,
                "print_params": args.print_params,
                "print_general": args.print_general,
            }
        )
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    summary = generate(cfg)
    if not args.quiet and cfg["print_man"]:
        print(f"{summary.pages} man pages written to {cfg['output_dir']}", file=sys.stderr)
    return 0 if summary.ok else 1


if __name__ == "__main__":
    sys.exit(main())
