"""Tests for the YAML front matter codec."""

import pytest

from contact_graph.vault.frontmatter import FrontMatterCodec, FrontMatterError


class TestSplit:
    def setup_method(self):
        self.codec = FrontMatterCodec()

    def test_document_without_front_matter(self):
        doc = self.codec.split("# Alice\nHello\n")
        assert doc.fields == {}
        assert doc.body == "# Alice\nHello\n"
        assert doc.header is None

    def test_fields_and_body(self):
        doc = self.codec.split("---\nUID: alice-1\nFN: Alice\nRELATED[friend]: id:bob-1\n---\n# Alice\n")
        assert doc.fields == {"UID": "alice-1", "FN": "Alice", "RELATED[friend]": "id:bob-1"}
        assert doc.body == "# Alice\n"
        assert doc.header == "---\nUID: alice-1\nFN: Alice\nRELATED[friend]: id:bob-1\n---\n"

    def test_empty_front_matter(self):
        doc = self.codec.split("---\n---\nbody")
        assert doc.fields == {}
        assert doc.body == "body"

    @pytest.mark.parametrize(
        "text",
        [
            "---\nUID: alice-1\n",
            "---\n- a\n- b\n---\n",
            "---\nUID: [unclosed\n---\n",
        ],
    )
    def test_invalid_front_matter(self, text):
        with pytest.raises(FrontMatterError):
            self.codec.split(text)


class TestJoin:
    def setup_method(self):
        self.codec = FrontMatterCodec()

    def test_unchanged_fields_keep_header_verbatim(self):
        text = "---\n# managed by hand\nUID: alice-1\n---\nold body\n"
        doc = self.codec.split(text)
        assert self.codec.join(doc, dict(doc.fields), "new body\n") == (
            "---\n# managed by hand\nUID: alice-1\n---\nnew body\n"
        )

    def test_changed_fields_are_dumped_in_order(self):
        doc = self.codec.split("---\nUID: alice-1\n---\nbody\n")
        text = self.codec.join(doc, {"UID": "alice-1", "FN": "Alice"}, "body\n")
        assert text == "---\nUID: alice-1\nFN: Alice\n---\nbody\n"
        assert self.codec.split(text).fields == {"UID": "alice-1", "FN": "Alice"}

    def test_relationship_fields_round_trip(self):
        doc = self.codec.split("plain\n")
        fields = {"RELATED[1:friend]": "id:bob-1", "RELATED[2:friend]": "name:Carol"}
        assert self.codec.split(self.codec.join(doc, fields, "plain\n")).fields == fields

    def test_no_fields_no_header(self):
        doc = self.codec.split("plain\n")
        assert self.codec.join(doc, {}, "plain\n") == "plain\n"
