"""
Doxygen XML parser for C API documentation.

Walks the XML Doxygen writes for a C header as a stream of pull events and
builds immutable records out of it:
  - a text collector that flattens description markup into troff
  - entity builders for functions, parameters, enums, structs and defines

Nothing here touches the filesystem beyond opening the XML file handed to
:class:`EventReader`; cross-file reference resolution lives in ``index.py``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from types import MappingProxyType

from lxml import etree


class DoxygenXMLError(Exception):
    """The event stream ended or broke in the middle of an element."""


class StructKind(Enum):
    STRUCT = auto()
    UNION = auto()
    ENUM = auto()
    UNKNOWN = auto()


_COMPOUND_KINDS = {
    "struct": StructKind.STRUCT,
    "union": StructKind.UNION,
    "enum": StructKind.ENUM,
}


def _empty_mapping():
    return MappingProxyType({})


@dataclass(frozen=True)
class ParamRecord:
    name: str
    type: str = ""
    refid: str | None = None
    description: str = ""
    brief: str = ""


@dataclass(frozen=True)
class ReturnValueRecord:
    name: str
    description: str = ""


@dataclass(frozen=True)
class DefineRecord:
    name: str
    initializer: str = ""
    brief: str = ""
    description: str = ""
    # None for object-like macros, a tuple (maybe empty) for function-like ones
    params: tuple[str, ...] | None = None


@dataclass(frozen=True)
class UnresolvedStructure:
    name: str


@dataclass(frozen=True)
class StructureRecord:
    kind: StructKind
    name: str
    brief: str = ""
    description: str = ""
    members: tuple[ParamRecord, ...] = ()


@dataclass(frozen=True)
class DetailText:
    body: str = ""
    returns: str = ""
    notes: str = ""
    retvals: tuple[ReturnValueRecord, ...] = ()
    param_descriptions: MappingProxyType = field(default_factory=_empty_mapping, hash=False)


@dataclass(frozen=True)
class FunctionRecord:
    name: str
    type: str = ""
    definition: str = ""
    argsstring: str = ""
    brief: str = ""
    detail: str = ""
    returns: str = ""
    retvals: tuple[ReturnValueRecord, ...] = ()
    notes: str = ""
    params: tuple[ParamRecord, ...] = ()
    refids: tuple[str, ...] = ()
    defines: tuple[DefineRecord, ...] = ()


# ── Event source ──


@dataclass(frozen=True)
class XmlEvent:
    kind: str  # "start", "text" or "end"
    tag: str = ""
    attrs: MappingProxyType = field(default_factory=_empty_mapping, hash=False)
    text: str = ""


class EventReader:
    """Pull cursor over one XML document.

    ``next()`` hands out start / text / end events in document order and
    returns ``None`` once the document is exhausted. Malformed input raises
    :class:`lxml.etree.XMLSyntaxError` when the reader is created.
    """

    def __init__(self, root):
        self._root = root
        self._events = self._walk()

    @classmethod
    def open(cls, path):
        parser = etree.XMLParser(remove_comments=True, remove_pis=True, resolve_entities=False)
        return cls(etree.parse(path, parser=parser).getroot())

    @classmethod
    def fromstring(cls, data):
        if isinstance(data, str):
            data = data.encode("utf-8")
        parser = etree.XMLParser(remove_comments=True, remove_pis=True, resolve_entities=False)
        return cls(etree.fromstring(data, parser=parser))

    def _walk(self):
        for action, el in etree.iterwalk(self._root, events=("start", "end")):
            tag = etree.QName(el).localname
            if action == "start":
                yield XmlEvent("start", tag, MappingProxyType(dict(el.attrib)))
                if el.text:
                    yield XmlEvent("text", text=el.text)
            else:
                yield XmlEvent("end", tag)
                if el.tail and el is not self._root:
                    yield XmlEvent("text", text=el.tail)

    def next(self):
        return next(self._events, None)


def _pull(reader):
    ev = reader.next()
    if ev is None:
        raise DoxygenXMLError("unexpected end of document")
    return ev


def skip(reader):
    """Consume events up to and including the close tag of the current element."""
    depth = 0
    while True:
        ev = _pull(reader)
        if ev.kind == "start":
            depth += 1
        elif ev.kind == "end":
            if depth == 0:
                return
            depth -= 1


def children(reader):
    """Yield each child start event; the caller must consume that child."""
    while True:
        ev = _pull(reader)
        if ev.kind == "end":
            return
        if ev.kind == "start":
            yield ev


# ── Text collector ──

_RETURN_KINDS = frozenset({"return", "returns", "result"})
_DROPPED_TAGS = frozenset({"xrefsect", "xreftitle", "xrefdescription", "anchor", "indexentry"})
_ENTITY_TAGS = {
    "sp": " ",
    "linebreak": "\n",
    "ndash": "\\(en",
    "mdash": "\\(em",
    "nonbreakablespace": "\\ ",
}
_IDENT_RE = re.compile(r"[A-Za-z_]\w*")


def troff_escape(text):
    return text.replace("\\", "\\e")


class _DetailChannels:
    def __init__(self):
        self.returns = []
        self.notes = []
        self.retvals = []
        self.params = {}


_FONT_ESCAPES = {"R": "\\fR", "B": "\\fB", "I": "\\fI", "BI": "\\f(BI"}


def _font_run(font, text, outer):
    # Close by switching back to the enclosing font so nested runs survive
    return _FONT_ESCAPES[font] + text + _FONT_ESCAPES[outer]


def _collect(reader, channels=None, font="R"):
    out = []
    refid = None
    while True:
        ev = _pull(reader)
        if ev.kind == "text":
            out.append(troff_escape(ev.text))
            continue
        if ev.kind == "end":
            return "".join(out), refid

        tag = ev.tag
        if tag == "ref":
            text, _ = _collect(reader, font=font)
            out.append(text)
            if refid is None:
                refid = ev.attrs.get("refid") or None
        elif tag == "para":
            out.append("\n")
            out.append(_collect(reader, channels, font)[0])
        elif tag in _ENTITY_TAGS:
            skip(reader)
            out.append(_ENTITY_TAGS[tag])
        elif tag in ("emphasis", "highlight"):
            out.append(_font_run("BI", _collect(reader, channels, "BI")[0], font))
        elif tag in ("bold", "computeroutput"):
            out.append(_font_run("B", _collect(reader, channels, "B")[0], font))
        elif tag == "programlisting":
            out.append("\n.nf\n" + _collect_code(reader, font) + "\n.fi\n")
        elif tag == "verbatim":
            out.append("\n.nf\n" + _collect(reader, font=font)[0].strip("\n") + "\n.fi\n")
        elif tag in ("itemizedlist", "orderedlist"):
            items = [_collect(reader, channels, font)[0].strip() for _ in children(reader)]
            out.append("\n\n" + "".join(f"* {item}\n" for item in items) + "\n")
        elif tag == "parameterlist":
            kind = ev.attrs.get("kind", "param")
            items = _collect_parameter_items(reader, channels, font)
            if channels is not None and kind == "retval":
                for names, desc in items:
                    channels.retvals.extend(ReturnValueRecord(n, desc) for n in names)
                continue
            if channels is not None and kind == "param":
                for names, desc in items:
                    for n in names:
                        channels.params[n] = desc
            for names, desc in items:
                out.append("\n" + _font_run("B", ", ".join(names), font) + " ")
                out.append(_font_run("I", desc, font))
        elif tag == "simplesect":
            kind = ev.attrs.get("kind", "")
            text = _collect(reader, channels, font)[0]
            if channels is not None and kind in _RETURN_KINDS:
                channels.returns.append(text)
            elif channels is not None and kind == "note":
                channels.notes.append(text)
            else:
                out.append(text)
        elif tag in _DROPPED_TAGS:
            skip(reader)
        else:
            out.append(_collect(reader, channels, font)[0])


def _collect_code(reader, font="R"):
    # Only codeline children count; whitespace between them is formatting.
    lines = []
    for ev in children(reader):
        if ev.tag == "codeline":
            lines.append(_collect(reader, font=font)[0])
        else:
            skip(reader)
    return "\n".join(lines)


def _collect_parameter_items(reader, channels, font="R"):
    items = []
    for item in children(reader):
        if item.tag != "parameteritem":
            skip(reader)
            continue
        names = []
        desc = ""
        for ev in children(reader):
            if ev.tag == "parameternamelist":
                for name_ev in children(reader):
                    text = _collect(reader)[0].strip()
                    if name_ev.tag == "parametername" and text:
                        names.append(text)
            elif ev.tag == "parameterdescription":
                # Line breaks are kept so code blocks survive into the record
                desc = _collect(reader, channels, font)[0].strip()
            else:
                skip(reader)
        items.append((names, desc))
    return items


def collect_text(reader):
    """Flatten the current element into troff text."""
    return _collect(reader)[0]


def collect_param_text(reader):
    """Like :func:`collect_text` but also returns the first ``ref`` id seen."""
    return _collect(reader)


def collect_detail(reader):
    """Split a ``detaileddescription`` into body, returns, notes and retvals."""
    channels = _DetailChannels()
    body, _ = _collect(reader, channels)
    return DetailText(
        body=body.strip(),
        returns="\n".join(channels.returns).strip(),
        notes="\n".join(channels.notes).strip(),
        retvals=tuple(channels.retvals),
        param_descriptions=MappingProxyType(channels.params),
    )


# ── Entity builders ──


def build_param(reader):
    name = ""
    suffix = ""
    type_text = ""
    refid = None
    brief = ""
    for ev in children(reader):
        if ev.tag == "type":
            type_text, refid = collect_param_text(reader)
        elif ev.tag in ("declname", "defname"):
            text = collect_text(reader).strip()
            if ev.tag == "declname" or not name:
                name = text
        elif ev.tag in ("array", "argsstring"):
            suffix += collect_text(reader).strip()
        elif ev.tag == "briefdescription":
            brief = collect_text(reader).strip()
        else:
            skip(reader)
    return ParamRecord(name=name + suffix, type=type_text.strip(), refid=refid, brief=brief)


def _bare_name(name):
    m = _IDENT_RE.match(name)
    return m.group(0) if m else name


def build_function(reader):
    """Build a :class:`FunctionRecord` from a ``memberdef kind="function"``."""
    fields = {}
    params = []
    detail = DetailText()
    for ev in children(reader):
        tag = ev.tag
        if tag in ("type", "definition", "argsstring", "name"):
            fields[tag] = collect_text(reader).strip()
        elif tag == "param":
            params.append(build_param(reader))
        elif tag == "briefdescription":
            fields["brief"] = collect_text(reader).strip()
        elif tag == "detaileddescription":
            detail = collect_detail(reader)
        else:
            skip(reader)

    descs = detail.param_descriptions
    params = [
        replace(p, description=descs.get(p.name) or descs.get(_bare_name(p.name), ""))
        for p in params
    ]
    return FunctionRecord(
        name=fields.get("name", ""),
        type=fields.get("type", ""),
        definition=fields.get("definition", ""),
        argsstring=fields.get("argsstring", ""),
        brief=fields.get("brief", ""),
        detail=detail.body,
        returns=detail.returns,
        retvals=detail.retvals,
        notes=detail.notes,
        params=tuple(params),
        refids=tuple(sorted({p.refid for p in params if p.refid})),
    )


def _build_enum_value(reader):
    name = ""
    brief = ""
    description = ""
    for ev in children(reader):
        if ev.tag == "name":
            name = collect_text(reader).strip()
        elif ev.tag == "briefdescription":
            brief = collect_text(reader).strip()
        elif ev.tag == "detaileddescription":
            description = collect_text(reader).strip()
        else:
            skip(reader)
    return ParamRecord(name=name, brief=brief, description=description)


def build_enum(reader):
    """Build an enum :class:`StructureRecord` from a ``memberdef kind="enum"``."""
    name = ""
    brief = ""
    description = ""
    members = []
    for ev in children(reader):
        if ev.tag == "name":
            name = collect_text(reader).strip()
        elif ev.tag == "enumvalue":
            members.append(_build_enum_value(reader))
        elif ev.tag == "briefdescription":
            brief = collect_text(reader).strip()
        elif ev.tag == "detaileddescription":
            description = collect_text(reader).strip()
        else:
            skip(reader)
    return StructureRecord(
        kind=StructKind.ENUM, name=name, brief=brief, description=description, members=tuple(members)
    )


def _build_member(reader):
    name = ""
    suffix = ""
    type_text = ""
    refid = None
    brief = ""
    description = ""
    for ev in children(reader):
        if ev.tag == "type":
            type_text, refid = collect_param_text(reader)
        elif ev.tag == "name":
            name = collect_text(reader).strip()
        elif ev.tag == "argsstring":
            suffix = collect_text(reader).strip()
        elif ev.tag == "briefdescription":
            brief = collect_text(reader).strip()
        elif ev.tag == "detaileddescription":
            description = collect_text(reader).strip()
        else:
            skip(reader)
    return ParamRecord(
        name=name + suffix, type=type_text.strip(), refid=refid, description=description, brief=brief
    )


def build_struct(reader, attrs):
    """Build a struct/union :class:`StructureRecord` from a companion ``compounddef``."""
    name = ""
    brief = ""
    description = ""
    members = []
    for ev in children(reader):
        if ev.tag == "compoundname":
            name = collect_text(reader).strip()
        elif ev.tag == "sectiondef":
            for member in children(reader):
                if member.tag == "memberdef" and member.attrs.get("kind") == "variable":
                    members.append(_build_member(reader))
                else:
                    skip(reader)
        elif ev.tag == "briefdescription":
            brief = collect_text(reader).strip()
        elif ev.tag == "detaileddescription":
            description = collect_text(reader).strip()
        else:
            skip(reader)
    return StructureRecord(
        kind=_COMPOUND_KINDS.get(attrs.get("kind", ""), StructKind.UNKNOWN),
        name=name,
        brief=brief,
        description=description,
        members=tuple(members),
    )


def build_define(reader):
    fields = {}
    params = None
    for ev in children(reader):
        if ev.tag in ("name", "initializer", "briefdescription", "detaileddescription"):
            fields[ev.tag] = collect_text(reader).strip()
        elif ev.tag == "param":
            if params is None:
                params = []
            for sub in children(reader):
                text = collect_text(reader).strip()
                if sub.tag == "defname" and text:
                    params.append(text)
        else:
            skip(reader)
    return DefineRecord(
        name=fields.get("name", ""),
        initializer=fields.get("initializer", ""),
        brief=fields.get("briefdescription", ""),
        description=fields.get("detaileddescription", ""),
        params=None if params is None else tuple(params),
    )
