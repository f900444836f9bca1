from pathlib import Path

import pytest

from vardec.run import main


def test_annotate_prints_hints(tmp_path: Path, capsys) -> None:
    source = tmp_path / "example.ts"
    source.write_text("function f(a) {\n  const b = a;\n\n  return a + b;\n}\n", encoding="utf-8")

    assert main(["annotate", str(source)]) == 0

    out = capsys.readouterr().out
    assert out.splitlines()[2] == "  ↳ a, b"


def test_annotate_with_counts(tmp_path: Path, capsys) -> None:
    source = tmp_path / "example.ts"
    source.write_text("let a = 1;\n\nconsole.log(a, a);\n", encoding="utf-8")

    assert main(["annotate", "--counts", str(source)]) == 0

    out = capsys.readouterr().out
    assert out.splitlines()[1] == "↳ a(1)"


def test_annotate_language_override(tmp_path: Path, capsys) -> None:
    source = tmp_path / "snippet.txt"
    source.write_text("package main\n\nfunc main() {\n\tx := 1\n\n\tprintln(x)\n}\n", encoding="utf-8")

    assert main(["annotate", "--language", "go", str(source)]) == 0

    out = capsys.readouterr().out
    assert "    ↳ x" in out.splitlines()


def test_annotate_reports_unparsable_file(tmp_path: Path, capsys) -> None:
    source = tmp_path / "broken.ts"
    source.write_text("function (\n", encoding="utf-8")

    assert main(["annotate", str(source)]) == 0

    out = capsys.readouterr().out
    assert "Could not parse" in out


def test_annotate_unknown_extension(tmp_path: Path) -> None:
    source = tmp_path / "notes.txt"
    source.write_text("hello\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["annotate", str(source)])

    assert "--language" in str(excinfo.value)


def test_annotate_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["annotate", str(tmp_path / "missing.ts")])

    assert "does not exist" in str(excinfo.value)
