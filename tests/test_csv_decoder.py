"""
Tests for the tolerant CSV decoder.

Covers quote toggling, ragged rows, synthesized column names and the
"never raises" contract for degenerate input.
"""

import pytest

from shopboost.ingest.csv_decoder import ParsedCsv, parse_csv, split_line


class TestSplitLine:
    """Tests for split_line."""

    def test_splits_on_commas_and_trims(self):
        assert split_line(" a , b,c ") == ["a", "b", "c"]

    def test_commas_inside_quotes_are_literal(self):
        assert split_line('"Smith, Jane",jane@example.com') == ["Smith, Jane", "jane@example.com"]

    def test_quote_characters_are_dropped_without_escape_decoding(self):
        # "" toggles twice, so both quotes vanish and nothing is escaped
        assert split_line('say ""hi"",x') == ["say hi", "x"]

    def test_unbalanced_quote_swallows_rest_of_line(self):
        assert split_line('a,"b,c') == ["a", "b,c"]

    def test_empty_fields_are_kept(self):
        assert split_line("a,,c,") == ["a", "", "c", ""]


class TestParseCsv:
    """Tests for parse_csv."""

    def test_header_keyed_rows(self):
        parsed = parse_csv("Name,Email\nJane,jane@example.com\n")

        assert parsed.header == ["Name", "Email"]
        assert parsed.rows == [{"Name": "Jane", "Email": "jane@example.com"}]
        assert len(parsed) == 1

    def test_crlf_and_blank_lines(self):
        parsed = parse_csv("A,B\r\n\r\n1,2\r\n   \r\n3,4\r\n")

        assert [row["A"] for row in parsed.rows] == ["1", "3"]

    def test_short_row_padded_with_empty_strings(self):
        parsed = parse_csv("A,B,C\n1")

        assert parsed.rows == [{"A": "1", "B": "", "C": ""}]

    def test_blank_header_cell_gets_positional_name(self):
        parsed = parse_csv("A,,C\n1,2,3")

        assert parsed.rows == [{"A": "1", "col_2": "2", "C": "3"}]

    def test_surplus_fields_get_positional_names(self):
        parsed = parse_csv("A,B\n1,2,3,4")

        assert parsed.rows == [{"A": "1", "B": "2", "col_3": "3", "col_4": "4"}]

    def test_row_keys_follow_header_order(self):
        parsed = parse_csv("Zeta,Alpha,Mid\n1,2,3")

        assert list(parsed.rows[0]) == ["Zeta", "Alpha", "Mid"]

    @pytest.mark.parametrize("text", [None, "", "\n\n", "Only,Header\n", "   \r\n"])
    def test_fewer_than_two_lines_yields_empty_result(self, text):
        parsed = parse_csv(text)

        assert parsed == ParsedCsv()
        assert parsed.header == []
        assert len(parsed) == 0

    def test_garbage_does_not_raise(self):
        parsed = parse_csv('"""\n,,,"\n\x00,\ufeff')

        assert isinstance(parsed, ParsedCsv)
