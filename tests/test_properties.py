"""Properties editor tests."""

from embedded_kafka.properties import (
    PropertiesEditor,
    escape_value,
    load_properties,
    unescape,
)

SAMPLE = (
    "# comment line\n"
    "! bang comment\n"
    "\n"
    "plain=value\n"
    "spaced = value with spaces\n"
    "colon:separated\n"
    "whitespace separated\n"
    "multi=first,\\\n"
    "      second\n"
    "escaped\\=key=a\\\\b\n"
    "unicode=caf\\u00e9\n"
    "empty=\n"
)


class TestParsing:

    def test_values(self):
        props = PropertiesEditor(SAMPLE).as_dict()
        assert props == {
            "plain": "value",
            "spaced": "value with spaces",
            "colon": "separated",
            "whitespace": "separated",
            "multi": "first,second",
            "escaped=key": "a\\b",
            "unicode": "café",
            "empty": "",
        }

    def test_comments_are_not_keys(self):
        editor = PropertiesEditor(SAMPLE)
        assert "# comment line" not in editor.keys()
        assert editor.keys()[0] == "plain"

    def test_last_definition_wins(self):
        editor = PropertiesEditor("a=1\nb=2\na=3\n")
        assert editor.get("a") == "3"
        assert editor.get("missing", "default") == "default"

    def test_unescape(self):
        assert unescape("a\\tb") == "a\tb"
        assert unescape("C\\:\\\\tmp") == "C:\\tmp"
        assert unescape("\\u0041") == "A"


class TestEditing:

    def test_untouched_text_round_trips(self):
        assert PropertiesEditor(SAMPLE).dumps() == SAMPLE

    def test_set_replaces_in_place(self):
        editor = PropertiesEditor(SAMPLE)
        editor.set("plain", "changed")
        lines = editor.dumps().splitlines()
        assert lines[3] == "plain=changed"
        assert lines[:3] == SAMPLE.splitlines()[:3]
        assert lines[4:] == SAMPLE.splitlines()[4:]

    def test_set_replaces_continuation_lines(self):
        editor = PropertiesEditor(SAMPLE)
        editor.set("multi", "one")
        text = editor.dumps()
        assert "multi=one\n" in text
        assert "second" not in text

    def test_set_drops_duplicates(self):
        editor = PropertiesEditor("a=1\nb=2\na=3\n")
        editor.set("a", "9")
        assert editor.dumps() == "a=9\nb=2\n"

    def test_set_appends_missing_key(self):
        editor = PropertiesEditor("a=1")
        editor.set("b", "2")
        assert editor.dumps() == "a=1\nb=2\n"

    def test_crlf_is_kept(self):
        editor = PropertiesEditor("a=1\r\nb=2\r\n")
        editor.set("a", "x")
        editor.set("c", "3")
        assert editor.dumps() == "a=x\r\nb=2\r\nc=3\r\n"

    def test_windows_path_is_escaped(self):
        assert escape_value("C:\\Temp\\kafka-1\\kafka-logs") == "C:\\\\Temp\\\\kafka-1\\\\kafka-logs"
        editor = PropertiesEditor()
        editor.set("log.dirs", "C:\\Temp\\logs")
        assert PropertiesEditor(editor.dumps()).get("log.dirs") == "C:\\Temp\\logs"

    def test_leading_space_survives(self):
        editor = PropertiesEditor()
        editor.set("k", " padded")
        assert PropertiesEditor(editor.dumps()).get("k") == " padded"

    def test_save_and_load(self, tmp_path):
        editor = PropertiesEditor(SAMPLE)
        editor.set("plain", "saved")
        path = editor.save(tmp_path / "out.properties")
        assert load_properties(path)["plain"] == "saved"
        assert path.read_bytes().startswith(b"# comment line\n")
