from gilt.data import load_data_dir, merge_preserving, parse_delimited


def test_parse_csv_rows():
    rows = parse_delimited("name,age\nAlice,30\nBob,25\n")
    assert rows == [{"name": "Alice", "age": "30"}, {"name": "Bob", "age": "25"}]


def test_csv_header_is_authoritative():
    rows = parse_delimited("name,,city\nAlice,x,Paris,extra\nBob\n")
    assert rows == [
        {"name": "Alice", "column_2": "x", "city": "Paris"},
        {"name": "Bob", "column_2": "", "city": ""},
    ]


def test_csv_empty_header_cells_are_numbered_by_position():
    rows = parse_delimited(",b,\n1,2,3\n")
    assert rows == [{"column_1": "1", "b": "2", "column_3": "3"}]


def test_csv_blank_lines_skipped_and_quotes_handled():
    rows = parse_delimited('title,body\n\n"Hello, world","line"\n')
    assert rows == [{"title": "Hello, world", "body": "line"}]


def test_tsv():
    assert parse_delimited("a\tb\n1\t2\n", "\t") == [{"a": "1", "b": "2"}]


def test_load_data_dir_nested_and_formats(tmp_path):
    data_dir = tmp_path / "_data"
    (data_dir / "team").mkdir(parents=True)
    (data_dir / "site.yml").write_text("title: Example\n", encoding="utf-8")
    (data_dir / "links.json").write_text('[{"url": "/a"}]', encoding="utf-8")
    (data_dir / "members.csv").write_text("name\nAnn\n", encoding="utf-8")
    (data_dir / "team" / "leads.yaml").write_text("- Zed\n", encoding="utf-8")
    (data_dir / ".hidden.yml").write_text("x: 1\n", encoding="utf-8")
    (data_dir / "notes.txt").write_text("ignored", encoding="utf-8")

    data = load_data_dir(data_dir)
    assert data == {
        "site": {"title": "Example"},
        "links": [{"url": "/a"}],
        "members": [{"name": "Ann"}],
        "team": {"leads": ["Zed"]},
    }


def test_malformed_data_file_is_skipped_with_warning(tmp_path, capsys):
    data_dir = tmp_path / "_data"
    data_dir.mkdir()
    (data_dir / "good.yml").write_text("ok: true\n", encoding="utf-8")
    (data_dir / "bad.yml").write_text("key: [unclosed\n", encoding="utf-8")
    (data_dir / "broken.json").write_text("{nope", encoding="utf-8")

    data = load_data_dir(data_dir)
    assert data == {"good": {"ok": True}}
    out = capsys.readouterr().out
    assert "Warning: Failed to parse data file" in out
    assert "bad.yml" in out
    assert "broken.json" in out


def test_missing_data_dir(tmp_path):
    assert load_data_dir(tmp_path / "_data") == {}


def test_merge_preserving_keeps_existing_keys():
    existing = {"github": {"repo": "plugin/value"}}
    merged = merge_preserving(existing, {"github": {"repo": "file", "extra": 1}, "new": 2})
    assert merged is existing
    assert existing == {"github": {"repo": "plugin/value"}, "new": 2}
