from odmaexport.export import BufferedWriter


class TestBufferedWriter:
    def test_writes_on_exit(self, tmp_path):
        path = tmp_path / "out.xml"

        with BufferedWriter(path) as out:
            out.write("<a>")
            out.write("</a>\n")
            assert path.read_text() == ""

        assert path.read_text(encoding="utf-8") == "<a></a>\n"

    def test_flushes_when_buffer_is_full(self, tmp_path):
        path = tmp_path / "out.xml"

        with BufferedWriter(path, buffer_size=4) as out:
            out.write("abcdef")
            assert path.read_text() == "abcdef"
            out.write("g")

        assert path.read_text() == "abcdefg"

    def test_write_returns_length(self, tmp_path):
        with BufferedWriter(tmp_path / "out.xml") as out:
            assert out.write("Grüße") == 5

    def test_utf8_and_unix_newlines(self, tmp_path):
        path = tmp_path / "out.xml"

        with BufferedWriter(path) as out:
            out.write("日本\n")

        assert path.read_bytes() == "日本\n".encode("utf-8")

    def test_partial_output_kept_on_error(self, tmp_path):
        path = tmp_path / "out.xml"

        try:
            with BufferedWriter(path) as out:
                out.write("<partial>")
                raise RuntimeError("interrupted")
        except RuntimeError:
            pass

        assert path.read_text() == "<partial>"
