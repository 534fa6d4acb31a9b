"""
mkdocs-doxyman: man pages from Doxygen XML.

Reads the XML Doxygen generates for a C header, resolves the structures its
functions use, and writes one troff manual page per function. Usable as a
command line tool (``doxygen2man``) or as an MkDocs plugin.
"""

__version__ = "1.0.0"
