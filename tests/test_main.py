# tests/test_main.py
"""Command-line interface."""

import json

import pytest

from halts.main import EXIT_INFRA, EXIT_LOOPS, EXIT_OK, EXIT_PARADOX, main


class TestClassifyCommand:

    def test_halts(self, ref, capsys):
        assert main(["classify", ref("unit")]) == EXIT_OK
        assert capsys.readouterr().out == f"{ref('unit')}: halts\n"

    def test_loops(self, ref, capsys):
        assert main(["classify", ref("unit"), ref("loop_forever")]) == EXIT_LOOPS
        out = capsys.readouterr().out.splitlines()
        assert out[1].endswith(": loops")

    def test_paradox_takes_precedence(self, ref, capsys):
        code = main(["classify", ref("loop_forever"), ref("g")])
        assert code == EXIT_PARADOX
        assert capsys.readouterr().out.splitlines()[1].endswith(": paradox")

    def test_infrastructure_failure(self, ref, capsys):
        assert main(["classify", ref("no_such_function"), ref("g")]) == EXIT_INFRA
        assert "HALT-2000" in capsys.readouterr().out

    def test_bad_reference(self, capsys):
        assert main(["classify", "not-a-reference"]) == EXIT_INFRA

    def test_json(self, ref, capsys):
        assert main(["classify", "-f", "json", ref("factorial")]) == EXIT_OK
        record = json.loads(capsys.readouterr().out)
        assert record["outcome"] == "halts"
        assert record["function"] == "factorial"
        assert len(record["recursion_sites"]) == 1

    def test_json_paradox(self, ref, capsys):
        main(["classify", "--format", "json", ref("g")])
        record = json.loads(capsys.readouterr().out)
        assert record["outcome"] == "paradox"
        assert "inversion paradox" in record["error"]

    def test_max_visited(self, ref, capsys):
        code = main(["classify", "--max-visited", "1", ref("recursive_cycle_a")])
        assert code == EXIT_INFRA
        assert "HALT-5000" in capsys.readouterr().out

    def test_invalid_max_visited(self, ref):
        assert main(["classify", "--max-visited", "0", ref("unit")]) == EXIT_INFRA

    def test_failure_does_not_hide_other_results(self, ref, tmp_path, capsys):
        deep = tmp_path / "deep.py"
        deep.write_text("def f(a):\n    return " + " or ".join(["a"] * 1500) + "\n", encoding="utf-8")
        assert main(["classify", f"{deep}::f", ref("unit")]) == EXIT_INFRA
        first, second = capsys.readouterr().out.splitlines()
        assert "HALT-5000" in first
        assert second.endswith(": halts")

    def test_output_file(self, ref, tmp_path):
        dest = tmp_path / "out" / "result.txt"
        assert main(["classify", "-o", str(dest), ref("loop_forever")]) == EXIT_LOOPS
        assert dest.read_text(encoding="utf-8").strip().endswith("loops")


class TestOtherCommands:

    def test_show(self, ref, capsys):
        assert main(["show", ref("loop_forever")]) == EXIT_OK
        assert capsys.readouterr().out == "def loop_forever():\n    while True:\n        pass\n"

    def test_show_missing(self, ref):
        assert main(["show", ref("missing")]) == EXIT_INFRA

    def test_list(self, cases_path, capsys):
        assert main(["list", cases_path]) == EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == f"{cases_path}::unit"
        assert f"{cases_path}::Walker::walk" in lines
        assert f"{cases_path}::outer::inner" in lines

    def test_list_missing_file(self, tmp_path):
        assert main(["list", str(tmp_path / "nope.py")]) == EXIT_INFRA

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA
        assert "usage" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert "halts" in capsys.readouterr().out
