"""Tests for the per-frame page analyzers."""

from dataclasses import replace

from pagesnap_core.analyzers import (
    ANALYZERS,
    AnalyzerContext,
    density_hints,
    extract_controls,
    extract_forms,
    extract_headings,
    extract_lists,
    extract_pagination,
    is_clickable,
)
from pagesnap_core.weights import DEFAULT_LIMITS, DEFAULT_WEIGHTS

from dom_builders import el, item_cards, page_doc


def ctx_for(doc, **limits):
    return AnalyzerContext(doc, DEFAULT_WEIGHTS, replace(DEFAULT_LIMITS, **limits))


class TestRegistry:
    """The analyzer registry is an explicit, ordered tuple."""

    def test_registered_names(self):
        """Every snapshot section has exactly one analyzer."""
        assert [a.name for a in ANALYZERS] == ["headings", "controls", "lists", "pagination", "forms", "hints"]


class TestHeadings:
    """Heading extraction."""

    def test_explicit_then_surrogate(self):
        """h1-h6 first, then large-font text blocks."""
        doc = page_doc(
            el("h1", text="Welcome"),
            el("div", text="Big promotional banner text", style={"fontSize": "28px"}, bbox=(0, 0, 600, 60)),
            el("div", text="small print that is long enough", bbox=(0, 0, 600, 60)),
        )
        assert extract_headings(ctx_for(doc)) == ["Welcome", "Big promotional banner text"]

    def test_role_and_aria_level(self):
        """role=heading and aria-level count as explicit headings."""
        doc = page_doc(
            el("div", text="Role heading", role="heading"),
            el("div", text="Level heading", aria_level="2"),
        )
        assert extract_headings(ctx_for(doc)) == ["Role heading", "Level heading"]

    def test_dedup_and_whitespace(self):
        """Texts are collapsed before the order-preserving dedup."""
        doc = page_doc(el("h2", text="  Deals \n of   the day "), el("h3", text="Deals of the day"))
        assert extract_headings(ctx_for(doc)) == ["Deals of the day"]

    def test_frame_cap(self):
        """At most eight headings per frame."""
        doc = page_doc(*[el("h2", text=f"Heading {i}") for i in range(40)])
        assert len(extract_headings(ctx_for(doc))) == 8


class TestControls:
    """Clickable detection."""

    def test_is_clickable(self):
        """href, role, focusability, pointer cursor and inline handlers."""
        assert is_clickable(el("a", text="x", href="https://shop.example/"))
        assert is_clickable(el("div", role="button"))
        assert is_clickable(el("button", text="Go"))
        assert is_clickable(el("span", style={"cursor": "pointer"}))
        assert not is_clickable(el("div", text="plain"))
        assert not is_clickable(el("a", text="no href"))

    def test_largest_first_and_hidden_skipped(self):
        """Controls sort by area; invisible ones never appear."""
        small = el("button", text="Small", bbox=(0, 0, 40, 20))
        big = el("a", text="Big", href="https://shop.example/big", bbox=(0, 0, 400, 60))
        hidden = el("button", text="Hidden", style={"display": "none"}, bbox=(0, 0, 800, 80))
        doc = page_doc(small, big, hidden)
        controls = extract_controls(ctx_for(doc))
        assert [c.name for c in controls] == ["Big", "Small"]
        assert controls[0].role == "link"
        assert controls[0].href == "https://shop.example/big"
        assert controls[0].visible is True

    def test_cap(self):
        """maxControls bounds the output."""
        doc = page_doc(*[el("button", text=f"B{i}") for i in range(100)])
        assert len(extract_controls(ctx_for(doc, max_controls=7))) == 7

    def test_collection_stops_at_twice_the_cap(self):
        """Candidates past 2x maxControls in document order are never ranked."""
        early = [el("button", text=f"B{i}", bbox=(0, i * 30, 40, 20)) for i in range(4)]
        late = el("a", text="Huge", href="https://shop.example/huge", bbox=(0, 500, 1200, 400))
        doc = page_doc(*early, late)

        names = [c.name for c in extract_controls(ctx_for(doc, max_controls=2))]
        assert names == ["B0", "B1"]

        names = [c.name for c in extract_controls(ctx_for(doc, max_controls=3))]
        assert names[0] == "Huge"


class TestLists:
    """Repetition-based list detection."""

    def test_ten_siblings_make_one_block(self):
        """Ten identical cards form a single ListBlock."""
        doc = page_doc(el("main", *item_cards(10)))
        blocks = extract_lists(ctx_for(doc))
        assert len(blocks) == 1
        block = blocks[0]
        assert block.item_count == 10
        assert block.item_link_selector == "a, [role=link]"
        assert block.root.selector.endswith("main > article:nth-of-type(1)")
        assert block.samples[0].startswith("Product 0")
        assert len(block.samples) == 3

    def test_five_siblings_are_not_a_list(self):
        """Below the repetition threshold nothing is reported."""
        doc = page_doc(el("main", *item_cards(5)))
        assert extract_lists(ctx_for(doc)) == []

    def test_tiny_items_are_ignored(self):
        """Members below the area floor do not count."""
        cards = item_cards(10)
        for card in cards:
            card.bbox = replace(card.bbox, w=10, h=10)
        doc = page_doc(el("main", *cards))
        assert extract_lists(ctx_for(doc)) == []

    def test_bigger_block_first(self):
        """Blocks are ordered by item count."""
        doc = page_doc(
            el("main", *item_cards(9)),
            el("div", *item_cards(12, start=100, tag="li"), cls="content"),
        )
        blocks = extract_lists(ctx_for(doc))
        assert [b.item_count for b in blocks] == [12, 9]


class TestPagination:
    """Pagination candidate ranking."""

    def test_rel_next_outranks_text(self):
        """rel=next beats a text-only "Next" link."""
        text_only = el("a", text="Next", href="https://shop.example/list/b", bbox=(0, 100, 60, 20))
        rel_next = el("a", text="Go", href="https://shop.example/list/a", rel="next", bbox=(0, 100, 60, 20))
        doc = page_doc(text_only, rel_next)
        found = extract_pagination(ctx_for(doc))
        assert [c.ref.href for c in found] == ["https://shop.example/list/a", "https://shop.example/list/b"]
        assert found[0].score > found[1].score

    def test_page_query_and_bottom_bonus(self):
        """A page parameter qualifies; low placement adds a bonus."""
        low = el("a", text="2", href="https://shop.example/list?page=2", bbox=(0, 900, 30, 20))
        top = el("a", text="3", href="https://shop.example/list?page=3", bbox=(0, 10, 30, 20))
        doc = page_doc(top, low)
        found = extract_pagination(ctx_for(doc))
        assert [c.score for c in found] == [3.0, 2.0]
        assert found[0].ref.href.endswith("page=2")

    def test_plain_links_do_not_qualify(self):
        """Ordinary links are not pagination."""
        doc = page_doc(el("a", text="About us", href="https://shop.example/about"))
        assert extract_pagination(ctx_for(doc)) == []


class TestForms:
    """Form mapping."""

    def login_form(self):
        return el(
            "form",
            el("label", text="Email address", attrs={"for": "email"}),
            el("input", id="email", type="email", name="email"),
            el("label", text="Password"),
            el("input", type="password", name="pw"),
            el("input", type="hidden", name="csrf"),
            el("input", type="checkbox", aria_label="Remember me"),
            el("button", text="Sign in", type="submit"),
            name="login",
        )

    def test_labels_roles_and_submit(self):
        """label[for], sibling label, aria-label; hidden inputs skipped."""
        doc = page_doc(self.login_form())
        forms = extract_forms(ctx_for(doc))
        assert len(forms) == 1
        form = forms[0]
        assert [f.label for f in form.fields] == ["Email address", "Password", "Remember me"]
        assert [f.input.role for f in form.fields] == ["textbox", "textbox", "checkbox"]
        assert form.submit is not None
        assert form.submit.name == "Sign in"
        assert form.form.name == "login"

    def test_missing_submit_and_label_are_omitted(self):
        """Absent submit/label keys are left out of the wire shape."""
        doc = page_doc(el("form", el("input", name="q")))
        out = extract_forms(ctx_for(doc))[0].to_dict()
        assert "submit" not in out
        assert "label" not in out["fields"][0]
        assert out["fields"][0]["input"]["name"] == "q"

    def test_field_cap(self):
        """maxFormFields bounds the fields of one form."""
        doc = page_doc(el("form", *[el("input", name=f"f{i}") for i in range(20)]))
        assert len(extract_forms(ctx_for(doc, max_form_fields=4))[0].fields) == 4


class TestDensity:
    """Density hints."""

    def test_text_and_link_density(self):
        """Characters and anchors per body element."""
        doc = page_doc(
            el("a", text="ab", href="https://shop.example/a"),
            el("a", text="cd", href="https://shop.example/c"),
            el("p", text="efgh"),
        )
        hints = density_hints(ctx_for(doc))
        assert hints.text_density == 3.33
        assert hints.link_density == 0.6667
