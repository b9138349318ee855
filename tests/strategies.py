"""Shared hypothesis strategies for Quill property-based testing.

- **Text**: template text with no tag delimiters
- **Values**: printable values for expression output
- **Fragments**: text interleaved with well-formed expression tags
"""

from __future__ import annotations

from hypothesis import strategies as st

# ---------------------------------------------------------------------------
# Text strategies
# ---------------------------------------------------------------------------

# Plain text that cannot open a tag (no "<%")
plain_text = st.text(
    alphabet=st.characters(
        blacklist_categories=("Cs",),  # no surrogates
        blacklist_characters="\x00",
    ),
    min_size=0,
    max_size=200,
).filter(lambda s: "<%" not in s and not s.endswith("<"))

# Arbitrary input that might stress the code generator (fuzz-like)
arbitrary_template_source = st.text(
    alphabet=st.sampled_from(list("<%=!>abc \n:'\"")),
    min_size=0,
    max_size=80,
)

# ---------------------------------------------------------------------------
# Value strategies
# ---------------------------------------------------------------------------

printable_value = st.one_of(
    st.text(alphabet=st.characters(blacklist_categories=("Cs",)), max_size=50),
    st.integers(),
    st.floats(allow_nan=False, allow_infinity=False),
)

escape_keyword = st.sampled_from(["html", "xml", "latex", "url", "none"])

# ---------------------------------------------------------------------------
# Fragment strategies
# ---------------------------------------------------------------------------

safe_identifier = st.sampled_from(["x", "y", "item", "count", "name", "data", "value"])

expression_tag = safe_identifier.map(lambda name: f"<%= {name} %>")

template_fragment = st.lists(
    st.one_of(plain_text, expression_tag),
    min_size=1,
    max_size=6,
).map("".join)
