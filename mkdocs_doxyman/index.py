"""
Per-file document index and two-pass structure resolution.

Pass 1 walks the main Doxygen XML file once, collecting functions, defines,
enums and one placeholder per structure referenced by a parameter type.
Pass 2 opens ``<refid>.xml`` next to the main file for every placeholder
that is still unresolved and swaps in the real struct definition.
"""

from __future__ import annotations

import logging
import os

from lxml import etree

from .parser import (
    DoxygenXMLError,
    EventReader,
    FunctionRecord,
    StructureRecord,
    UnresolvedStructure,
    build_define,
    build_enum,
    build_function,
    build_struct,
    children,
    collect_detail,
    collect_text,
    skip,
)

log = logging.getLogger("mkdocs.plugins.doxyman")

_POINTER_CHARS = "*(& "


def _placeholder_name(type_text):
    name = type_text.rstrip(_POINTER_CHARS)
    for prefix in ("const ", "struct ", "union ", "enum "):
        if name.startswith(prefix):
            name = name[len(prefix) :]
    return name.strip()


class DocumentIndex:
    """Everything pass 1 and pass 2 learn about one main XML file."""

    def __init__(self, xml_dir=""):
        self.xml_dir = xml_dir
        self.compound_name = ""
        self.functions = []
        self.defines = []
        self.structures = {}
        self.brief = ""
        self.detail = None

    def add_function(self, fn):
        self.functions.append(fn)
        for param in fn.params:
            if param.refid and param.refid not in self.structures:
                self.structures[param.refid] = UnresolvedStructure(_placeholder_name(param.type))

    def add_structure(self, refid, record):
        self.structures[refid] = record

    def unresolved(self):
        return [r for r, s in self.structures.items() if isinstance(s, UnresolvedStructure)]

    def resolved_structures(self, fn):
        """Resolved structures used by ``fn``, in its sorted refid order."""
        out = []
        for refid in fn.refids:
            s = self.structures.get(refid)
            if isinstance(s, StructureRecord):
                out.append(s)
        return out

    @property
    def general(self):
        """Synthetic record standing for the whole header."""
        if not self.compound_name:
            return None
        detail = self.detail
        return FunctionRecord(
            name=self.compound_name,
            brief=self.brief,
            detail=detail.body if detail else "",
            returns=detail.returns if detail else "",
            retvals=detail.retvals if detail else (),
            notes=detail.notes if detail else "",
            defines=tuple(self.defines),
        )

    # ── Pass 1 ──

    def read_main(self, reader):
        while True:
            ev = reader.next()
            if ev is None:
                return
            if ev.kind == "start" and ev.tag == "compounddef":
                self._read_compound(reader)

    def _read_compound(self, reader):
        for ev in children(reader):
            if ev.tag == "compoundname":
                name = collect_text(reader).strip()
                self.compound_name = self.compound_name or name
            elif ev.tag == "briefdescription":
                self.brief = collect_text(reader).strip()
            elif ev.tag == "detaileddescription":
                self.detail = collect_detail(reader)
            elif ev.tag == "sectiondef":
                self._read_section(reader)
            else:
                skip(reader)

    def _read_section(self, reader):
        for ev in children(reader):
            kind = ev.attrs.get("kind", "")
            if ev.tag != "memberdef":
                skip(reader)
            elif kind == "function":
                self.add_function(build_function(reader))
            elif kind == "enum":
                self.add_structure(ev.attrs.get("id", ""), build_enum(reader))
            elif kind == "define":
                self.defines.append(build_define(reader))
            else:
                skip(reader)

    # ── Pass 2 ──

    def resolve(self):
        for refid in self.unresolved():
            path = os.path.join(self.xml_dir, f"{refid}.xml")
            record = read_structure_file(path)
            if record is None:
                del self.structures[refid]
            else:
                self.structures[refid] = record


def read_structure_file(path):
    """Build the struct defined by a companion file, or ``None`` if unusable."""
    try:
        reader = EventReader.open(path)
        while True:
            ev = reader.next()
            if ev is None:
                log.debug("doxyman: no compounddef in %s", path)
                return None
            if ev.kind == "start" and ev.tag == "compounddef":
                return build_struct(reader, ev.attrs)
    except OSError as exc:
        log.debug("doxyman: cannot open structure file %s: %s", path, exc)
    except (etree.XMLSyntaxError, DoxygenXMLError) as exc:
        log.warning("doxyman: bad structure file %s: %s", path, exc)
    return None


def build_index(path, xml_dir=None):
    """Run both passes over the main XML file at ``path``.

    Tokenizer errors in the main file propagate to the caller.
    """
    if xml_dir is None:
        xml_dir = os.path.dirname(path)
    index = DocumentIndex(xml_dir)
    index.read_main(EventReader.open(path))
    index.resolve()
    log.debug(
        "doxyman: %s: %d functions, %d structures",
        path,
        len(index.functions),
        len(index.structures),
    )
    return index
