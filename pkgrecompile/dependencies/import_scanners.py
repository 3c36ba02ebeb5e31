"""
Static import scanners, one per module-format family.

Each scanner takes the text of a bundle file and returns the module
specifiers it imports, in source order, without executing anything.
Comments are stripped first so commented-out imports are not reported.
"""

import re
from typing import Callable, Dict, List

from ..domain.entry_point import COMMONJS, ESM2015, ESM5, UMD

# String literals are matched (and kept) so comment markers inside them are ignored.
_STRING_OR_COMMENT = re.compile(
    r'''("(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)|/\*.*?\*/|//[^\n]*''',
    re.DOTALL,
)

# A statement starts a line or follows `;`, `{` or `}`. Minified output drops
# the whitespace around braces, `*` and quotes.
_ESM_STATEMENT = re.compile(
    r'''(?:^|(?<=[;{}]))\s*(?:import|export)(?![\w$])\s*(?:[\w*\s{},$]*?\s*\bfrom\s*)?['"]([^'"\n]+)['"]''',
    re.MULTILINE,
)
_DYNAMIC_IMPORT = re.compile(r'''\bimport\(\s*['"]([^'"\n]+)['"]\s*\)''')
_REQUIRE_CALL = re.compile(r'''\brequire\(\s*['"]([^'"\n]+)['"]\s*\)''')
_AMD_DEFINE = re.compile(
    r'''\bdefine\(\s*(?:['"][^'"\n]*['"]\s*,\s*)?\[([^\]]*)\]''',
)
_STRING_LITERAL = re.compile(r'''['"]([^'"\n]+)['"]''')
_UMD_WRAPPER = re.compile(r'^\s*[(!]\s*function\s*\(\s*global\s*,\s*factory\s*\)')

# AMD pseudo-dependencies that are not modules.
_AMD_BUILTINS = {'exports', 'require', 'module'}

ImportScanner = Callable[[str], List[str]]


def strip_comments(source: str) -> str:
    return _STRING_OR_COMMENT.sub(lambda m: m.group(1) if m.group(1) is not None else ' ', source)


def _unique(specifiers: List[str]) -> List[str]:
    return list(dict.fromkeys(specifiers))


def scan_esm_imports(source: str) -> List[str]:
    """`import`/`export ... from` statements plus dynamic `import()` calls."""
    source = strip_comments(source)
    found = [(m.start(), m.group(1)) for m in _ESM_STATEMENT.finditer(source)]
    found += [(m.start(), m.group(1)) for m in _DYNAMIC_IMPORT.finditer(source)]
    return _unique([specifier for _, specifier in sorted(found)])


def scan_commonjs_imports(source: str) -> List[str]:
    return _unique(_REQUIRE_CALL.findall(strip_comments(source)))


def scan_umd_imports(source: str) -> List[str]:
    """
    Dependencies declared by the UMD wrapper.

    The AMD `define([...])` list is authoritative; `require()` calls in the
    CommonJS branch are used when there is no define list.
    """
    source = strip_comments(source)
    define = _AMD_DEFINE.search(source)
    if define:
        deps = [d for d in _STRING_LITERAL.findall(define.group(1)) if d not in _AMD_BUILTINS]
        return _unique(deps)
    return _unique(_REQUIRE_CALL.findall(source))


def is_umd_module(source: str) -> bool:
    """True if the first statement is a `(function (global, factory) {...})` wrapper."""
    return bool(_UMD_WRAPPER.match(strip_comments(source)))


SCANNERS: Dict[str, ImportScanner] = {
    ESM2015: scan_esm_imports,
    ESM5: scan_esm_imports,
    UMD: scan_umd_imports,
    COMMONJS: scan_commonjs_imports,
}
