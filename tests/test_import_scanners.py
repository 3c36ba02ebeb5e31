"""Tests for the static import scanners."""

from pkgrecompile.dependencies.import_scanners import (
    is_umd_module,
    scan_commonjs_imports,
    scan_esm_imports,
    scan_umd_imports,
)

UMD_SOURCE = """\
(function (global, factory) {
  typeof exports === 'object' ? factory(exports, require('dep-a'), require('dep-b')) :
  typeof define === 'function' && define.amd ? define(['exports', 'dep-a', 'dep-b'], factory) :
  factory(global.lib = {});
}(this, function (exports) { exports.VALUE = 1; }));
"""


class TestEsmScanner:

    def test_finds_static_and_dynamic_imports_in_order(self):
        source = "\n".join([
            "import { a } from './a';",
            'import * as b from "b-lib";',
            "export { c } from '@scope/c';",
            "import 'side-effect';",
            "// import { nope } from 'commented';",
            "/* import { nope2 } from 'block'; */",
            "const lazy = import('./lazy');",
            "import { a as a2 } from './a';",
        ])

        assert scan_esm_imports(source) == ['./a', 'b-lib', '@scope/c', 'side-effect', './lazy']

    def test_ignores_plain_exports(self):
        source = "export const VALUE = 'lib';\nexport function f() { return 'x'; }\n"
        assert scan_esm_imports(source) == []

    def test_multiline_named_imports(self):
        source = "import {\n  a,\n  b\n} from 'multi';\n"
        assert scan_esm_imports(source) == ['multi']

    def test_minified_statements(self):
        source = 'import{a}from"x";export*from"y";import"z";export{b as c}from\'w\';'
        assert scan_esm_imports(source) == ['x', 'y', 'z', 'w']

    def test_comment_markers_inside_strings(self):
        source = "\n".join([
            "const glob = 'a/*';",
            "import { a } from './a';",
            "const url = \"http://example.com\";",
            "import { b } from './b';",
            "/* real comment */",
        ])

        assert scan_esm_imports(source) == ['./a', './b']

    def test_keywords_inside_strings_are_not_statements(self):
        source = 'var kind = "export"; var x = \'y\';\n'
        assert scan_esm_imports(source) == []


class TestCommonJsScanner:

    def test_finds_require_calls(self):
        source = "var a = require('a');\nconst b = require(\"./b\");\n// require('nope');\n"
        assert scan_commonjs_imports(source) == ['a', './b']


class TestUmdScanner:

    def test_uses_amd_define_list(self):
        assert scan_umd_imports(UMD_SOURCE) == ['dep-a', 'dep-b']

    def test_falls_back_to_require(self):
        source = "(function (global, factory) { factory(require('only-cjs')); }(this, function () {}));"
        assert scan_umd_imports(source) == ['only-cjs']

    def test_is_umd_module(self):
        assert is_umd_module(UMD_SOURCE)
        assert is_umd_module("/* banner */\n!function (global, factory) {}(this, function () {});")
        assert not is_umd_module("var a = require('a');")
        assert not is_umd_module("export const x = 1;")
