"""
Man page renderer for parsed Doxygen records.

Takes FunctionRecord objects and the DocumentIndex they came from and turns
them into troff pages: NAME, SYNOPSIS with aligned parameters, structure
listings, return values, defines and cross-references. Also provides a
plain-text dump of the same records.
"""

from __future__ import annotations

import re

from .parser import StructKind

# Types at least this long (usually function pointers) don't set the column width
MAX_ALIGNED_TYPE_LENGTH = 40

_POINTER_TOKENS = ("(*", "**", "*")

_STRUCT_KEYWORDS = {
    StructKind.STRUCT: "struct",
    StructKind.UNION: "union",
    StructKind.ENUM: "enum",
    StructKind.UNKNOWN: "struct",
}


class RenderConfig:
    def __init__(
        self,
        *,
        section=3,
        date="",
        package_name="Package",
        header="Programmer's Manual",
        headerfile="",
        header_prefix="",
        copyright="",
        print_params=False,
    ):
        self.section = section
        self.date = date
        self.package_name = package_name
        self.header = header
        self.headerfile = headerfile
        self.header_prefix = header_prefix
        self.copyright = copyright
        self.print_params = print_params


def split_pointer(type_text):
    """Split ``"char **"`` into ``("char", "**")``; no pointer gives ``""``."""
    t = type_text.rstrip()
    for token in _POINTER_TOKENS:
        if t.endswith(token):
            return t[: -len(token)].rstrip(), token
    return t, ""


def type_width(params):
    widths = [
        len(split_pointer(p.type)[0])
        for p in params
        if p.type and len(p.type) < MAX_ALIGNED_TYPE_LENGTH
    ]
    return max(widths, default=0)


def _declaration(param, width):
    base, ptr = split_pointer(param.type)
    if not param.name:
        return f"\\fB{base}{ptr}\\fP"
    return f"\\fB{base:<{width}}\\fP {ptr}\\fI{param.name}\\fP"


def _protect(line):
    if line.startswith((".", "'")) and line not in (".nf", ".fi"):
        return "\\&" + line
    return line


def block_lines(text, para=".PP"):
    """Break description text into troff lines.

    Every prose line is followed by ``para`` (``.PP`` by default); lines
    between ``.nf`` and ``.fi`` are kept exactly as they are.
    """
    out = []
    in_code = False
    for line in text.split("\n"):
        if line == ".nf":
            in_code = True
            out.append(line)
        elif line == ".fi":
            in_code = False
            out.append(line)
        elif in_code:
            out.append(_protect(line))
        elif line.strip():
            out += [_protect(line.strip()), para]
    return out


def _item_lines(text):
    # Inside .TP a .PP would end the indented paragraph
    lines = block_lines(text, para=".br")
    if lines and lines[-1] == ".br":
        lines.pop()
    return lines


def _flat(text):
    lines = (line.strip() for line in text.split("\n"))
    return " ".join(line for line in lines if line and line not in (".nf", ".fi"))


def page_filename(name, section):
    return f"{name}.{section}"


def _synopsis(fn, cfg, general):
    lines = [".SH SYNOPSIS", ".nf"]
    if cfg.headerfile:
        lines.append(f".B #include <{cfg.header_prefix}{cfg.headerfile}>")
    if general:
        lines.append(".fi")
        return lines

    definition = fn.definition or f"{fn.type} {fn.name}".strip()
    lines.append(".sp")
    if not fn.params:
        lines += [f"\\fB{definition}\\fP();", ".fi"]
        return lines

    width = type_width(fn.params)
    lines.append(f"\\fB{definition}\\fP(")
    last = len(fn.params) - 1
    for i, param in enumerate(fn.params):
        sep = "," if i < last else ""
        lines.append(f"    {_declaration(param, width)}{sep}")
    lines += [");", ".fi"]
    return lines


def _params_section(fn):
    documented = [p for p in fn.params if p.type and p.description]
    if not documented:
        return []
    lines = [".SH PARAMS"]
    for param in documented:
        lines += [".TP", _declaration(param, 0)] + _item_lines(param.description)
    return lines


def structure_lines(struct):
    keyword = _STRUCT_KEYWORDS[struct.kind]
    lines = [".nf", "\\fB"]
    if struct.brief:
        lines += ["/*", f" * {_flat(struct.brief)}", " */"]
    lines.append(f"{keyword} {struct.name} {{")
    if struct.kind == StructKind.ENUM:
        for member in struct.members:
            comment = _flat(member.brief or member.description)
            tail = f" /* {comment} */" if comment else ""
            lines.append(f"    \\fI{member.name}\\fB,{tail}")
    else:
        width = type_width(struct.members)
        for member in struct.members:
            base, ptr = split_pointer(member.type)
            comment = _flat(member.brief or member.description)
            tail = f" /* {comment} */" if comment else ""
            lines.append(f"    {base:<{width}} {ptr}\\fI{member.name}\\fB;{tail}")
    lines += ["};", "\\fP", ".fi"]
    if struct.description:
        lines += [".PP"] + block_lines(struct.description)
    return lines


def _structures_section(structures):
    if not structures:
        return []
    lines = [".SH STRUCTURES"]
    for i, struct in enumerate(structures):
        if i:
            lines.append(".sp")
        lines += structure_lines(struct)
    return lines


def _return_section(fn):
    if not fn.returns and not fn.retvals:
        return []
    lines = [".SH RETURN VALUES", ".PP"]
    lines += block_lines(fn.returns)
    for rv in fn.retvals:
        lines += [".TP", f"\\fB{rv.name}\\fP"] + _item_lines(rv.description)
    return lines


def constant_defines(defines):
    return [d for d in defines if d.name and d.name == d.name.upper()]


def define_head(define):
    """``NAME`` for object-like macros, ``NAME(a, b)`` for function-like ones."""
    if define.params is None:
        return define.name
    return f"{define.name}({', '.join(define.params)})"


def _defines_section(fn):
    defines = constant_defines(fn.defines)
    if not defines:
        return []
    heads = [define_head(d) for d in defines]
    width = max(len(h) for h in heads)
    lines = [".SH DEFINES", ".nf", "\\fB"]
    for d, head in zip(defines, heads):
        comment = _flat(d.brief)
        tail = f" /* {comment} */" if comment else ""
        lines.append(f"#define {head:<{width}} {d.initializer}{tail}".rstrip())
    lines += ["\\fP", ".fi"]
    return lines


def _see_also(fn, functions, section):
    others = [f.name for f in functions if f.name != fn.name]
    if not others:
        return []
    refs = ", ".join(f"\\fI{name}\\fP({section})" for name in others)
    return [".SH SEE ALSO", ".PP", ".nh", ".ad l", refs, ".ad", ".hy"]


def render_manpage(fn, index, cfg=None, *, general=False):
    """Render one troff page for ``fn``.

    ``index`` supplies the resolved structures and the sibling functions
    listed under SEE ALSO.
    """
    if cfg is None:
        cfg = RenderConfig()

    lines = [
        '.\\" Automatically generated man page, do not edit',
        f'.TH "{fn.name.upper()}" {cfg.section} "{cfg.date}" "{cfg.package_name}" "{cfg.header}"',
        ".SH NAME",
        f"{fn.name} \\- {_flat(fn.brief)}" if fn.brief else fn.name,
    ]
    lines += _synopsis(fn, cfg, general)
    if cfg.print_params:
        lines += _params_section(fn)
    if fn.detail.strip():
        lines += [".SH DESCRIPTION", ".PP"] + block_lines(fn.detail)
    if not general:
        lines += _structures_section(index.resolved_structures(fn))
    lines += _return_section(fn)
    if general:
        lines += _defines_section(fn)
    if fn.notes:
        lines += [".SH NOTE", ".PP"] + block_lines(fn.notes)
    lines += _see_also(fn, index.functions, cfg.section)
    if cfg.copyright:
        lines += ['.SH "COPYRIGHT"', ".PP", cfg.copyright]
    return "\n".join(lines) + "\n"


# ── Plain text dump ──

_FONT_RE = re.compile(r"\\f(?:\(..|\[[^\]]*\]|.)")
_ESCAPES = {"\\e": "\\", "\\(en": "-", "\\(em": "--", "\\ ": " ", "\\-": "-", "\\&": ""}


def plain_text(text):
    text = _FONT_RE.sub("", text)
    for esc, repl in _ESCAPES.items():
        text = text.replace(esc, repl)
    lines = [ln for ln in text.split("\n") if ln not in (".nf", ".fi")]
    return "\n".join(lines).strip()


def render_ascii(fn):
    lines = [f"FUNCTION {fn.type} {fn.name}{fn.argsstring}".replace("  ", " ")]
    for p in fn.params:
        ref = f" ({p.refid})" if p.refid else ""
        lines.append(f"  PARAM: {p.type} {p.name}{ref}".rstrip())
        if p.description:
            lines.append(f"         {plain_text(p.description)}")
    lines.append(f"BRIEF: {plain_text(fn.brief)}")
    if fn.detail:
        lines.append(f"DETAIL: {plain_text(fn.detail)}")
    if fn.returns:
        lines.append(f"RETURNS: {plain_text(fn.returns)}")
    for rv in fn.retvals:
        lines.append(f"  RETVAL: {rv.name} {plain_text(rv.description)}".rstrip())
    if fn.notes:
        lines.append(f"NOTE: {plain_text(fn.notes)}")
    for d in fn.defines:
        lines.append(f"  DEFINE: {define_head(d)} {d.initializer}".rstrip())
    lines.append("----------------------")
    return "\n".join(lines)
