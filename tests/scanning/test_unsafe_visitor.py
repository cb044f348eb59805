"""Tests for unsafe usage counting in a single source text."""

import pytest

from unsafe_census.exceptions import ParseFailed
from unsafe_census.scanning import Count, CounterBlock, scan


def counters(code: str, **kwargs) -> CounterBlock:
    return scan(code, **kwargs).counters


class TestFunctions:
    """Free functions are unsafe by signature or export attributes."""

    def test_empty_source(self):
        """An empty file counts nothing."""
        assert counters("") == CounterBlock()

    def test_safe_function(self):
        assert counters("fn f() {}").functions == Count(safe=1, unsafe=0)

    def test_unsafe_function(self):
        result = counters("unsafe fn f() {}")
        assert result.functions == Count(safe=0, unsafe=1)

    def test_extern_unsafe_function(self):
        result = counters('pub unsafe extern "C" fn f() {}')
        assert result.functions == Count(safe=0, unsafe=1)

    def test_safe_function_with_unsafe_block_stays_safe(self):
        """The block's expressions are unsafe, the function is not."""
        result = counters("fn f() { unsafe { g(); h(); } }")
        assert result.functions == Count(safe=1, unsafe=0)
        assert result.expressions == Count(safe=0, unsafe=2)

    def test_no_mangle_makes_function_unsafe(self):
        result = counters("#[no_mangle]\npub extern \"C\" fn exported() {}")
        assert result.functions == Count(safe=0, unsafe=1)

    def test_export_name_makes_function_unsafe(self):
        result = counters('#[export_name = "sym"]\nfn exported() {}')
        assert result.functions == Count(safe=0, unsafe=1)

    def test_unrelated_attribute_keeps_function_safe(self):
        result = counters("#[inline]\nfn f() {}")
        assert result.functions == Count(safe=1, unsafe=0)

    def test_nested_function_counted(self):
        result = counters("fn outer() { fn inner() {} }")
        assert result.functions == Count(safe=2, unsafe=0)


class TestExpressions:
    """Expression tallies inside and outside unsafe scopes."""

    def test_safe_expressions(self):
        result = counters("fn f() { let x = 1 + 2; g(x); }")
        assert result.expressions == Count(safe=2, unsafe=0)

    def test_literals_and_paths_not_counted(self):
        result = counters("fn f() { let x = 1; let y = x; }")
        assert result.expressions == Count()

    def test_deref_in_unsafe_block(self):
        result = counters("fn f(p: *const u8) -> u8 { unsafe { *p } }")
        assert result.expressions == Count(safe=0, unsafe=1)

    def test_method_call_counts_once(self):
        result = counters("fn f(v: Vec<u8>) { v.len(); }")
        assert result.expressions == Count(safe=1, unsafe=0)

    def test_field_access_counts(self):
        result = counters("fn f(p: P) -> u8 { p.x }")
        assert result.expressions == Count(safe=1, unsafe=0)

    def test_nested_unsafe_blocks_count_once(self):
        """An expression under two unsafe blocks is tallied exactly once."""
        result = counters("fn f() { unsafe { unsafe { g(); } } }")
        assert result.expressions == Count(safe=0, unsafe=1)

    def test_unsafe_fn_body_is_unsafe_scope(self):
        result = counters("unsafe fn f() { g(); }")
        assert result.expressions == Count(safe=0, unsafe=1)

    def test_mixed_scopes(self):
        code = """
        fn f() {
            a();
            unsafe { b(); }
            c();
        }
        """
        assert counters(code).expressions == Count(safe=2, unsafe=1)

    def test_macro_invocation_counts_as_one(self):
        result = counters('fn f() { println!("{}", 1 + 2); }')
        assert result.expressions == Count(safe=1, unsafe=0)

    def test_item_macros_not_counted(self):
        code = (
            "macro_rules! m { () => {} }\n"
            "m!{}\n"
            "thread_local! { static X: u8 = 0; }\n"
            "struct S;\n"
            "impl S { m!{} }\n"
        )
        assert counters(code).expressions == Count()

    def test_item_macro_beside_expression_macro(self):
        code = 'm!{}\nfn f() { unsafe { println!("{}", 1); } }'
        assert counters(code).expressions == Count(safe=0, unsafe=1)

    def test_closure_inside_unsafe_block(self):
        result = counters("fn f() { unsafe { let c = || g(); } }")
        assert result.expressions == Count(safe=0, unsafe=2)


class TestItems:
    """Impls, traits and methods."""

    def test_safe_impl_and_method(self):
        result = counters("struct S; impl S { fn m(&self) {} }")
        assert result.impls == Count(safe=1, unsafe=0)
        assert result.methods == Count(safe=1, unsafe=0)
        assert result.functions == Count()

    def test_unsafe_impl(self):
        result = counters("struct S; unsafe impl Send for S {}")
        assert result.impls == Count(safe=0, unsafe=1)

    def test_unsafe_method(self):
        result = counters("struct S; impl S { unsafe fn m(&self) {} fn n(&self) {} }")
        assert result.methods == Count(safe=1, unsafe=1)

    def test_unsafe_trait(self):
        result = counters("unsafe trait T {} trait U {}")
        assert result.traits == Count(safe=1, unsafe=1)

    def test_trait_default_method_not_counted_as_function(self):
        result = counters("trait T { fn d(&self) { g(); } }")
        assert result.functions == Count()
        assert result.methods == Count()
        assert result.expressions == Count(safe=1, unsafe=0)

    def test_items_inside_inline_module(self):
        result = counters("mod inner { pub unsafe fn f() {} }")
        assert result.functions == Count(safe=0, unsafe=1)


class TestTestCode:
    """Test functions and test modules can be excluded."""

    CODE = """
    fn real() {}

    #[test]
    fn check() { unsafe { g(); } }

    #[cfg(test)]
    mod tests {
        unsafe fn helper() {}
    }
    """

    def test_included_by_default(self):
        result = counters(self.CODE)
        assert result.functions == Count(safe=2, unsafe=1)
        assert result.expressions == Count(safe=0, unsafe=1)

    def test_excluded_when_requested(self):
        result = counters(self.CODE, include_tests=False)
        assert result.functions == Count(safe=1, unsafe=0)
        assert result.expressions == Count()


class TestScanProperties:
    def test_repeated_scans_are_identical(self):
        """Scanning the same text twice gives the same result."""
        code = "struct S; unsafe impl Sync for S {} fn f() { unsafe { g(); } }"
        assert scan(code) == scan(code)

    def test_bytes_and_text_agree(self):
        code = "unsafe fn f() { g(); }"
        assert scan(code.encode()) == scan(code)

    def test_invalid_utf8_is_decoded_lossily(self):
        code = b'fn f() { let s = "\xff\xfe"; unsafe { g(); } }'
        result = counters(code)
        assert result.expressions == Count(safe=0, unsafe=1)

    def test_concatenation_adds_counts(self):
        """Counts of two independent files add up to the counts of both."""
        left = "unsafe fn a() { x(); }"
        right = "struct S; impl S { fn m(&self) { unsafe { y(); } } }"
        combined = counters(left + "\n" + right)
        assert combined == counters(left) + counters(right)


class TestParseFailures:
    def test_syntax_error_raises(self):
        with pytest.raises(ParseFailed) as info:
            scan("fn f( {")
        assert info.value.filepath is None
        assert info.value.diagnostic

    def test_diagnostic_has_position(self):
        with pytest.raises(ParseFailed) as info:
            scan("fn ok() {}\nfn broken( {")
        assert info.value.diagnostic[0].isdigit()
