import io

from fakes import phase
from retdec_client.models import OutputKind, Phase
from retdec_client.services.storage import FileSaveDecompilationResult


def _result(tmp_path, kinds=None):
    log = io.StringIO()
    result = FileSaveDecompilationResult(tmp_path / "out", kinds=kinds, log=log)
    result.set_id("job-1")
    result.started()
    return result, log


def test_saves_under_suggested_name(tmp_path):
    result, log = _result(tmp_path)

    assert result.accept_output(OutputKind.HLL)
    result.consume_output("prog.c", "text/x-c", io.BytesIO(b"int main() {}"))

    assert (tmp_path / "out" / "prog.c").read_bytes() == b"int main() {}"
    assert result.saved == [tmp_path / "out" / "prog.c"]
    assert "Consuming prog.c" in log.getvalue()


def test_suggested_name_cannot_escape_output_dir(tmp_path):
    result, _ = _result(tmp_path)

    result.accept_output(OutputKind.DSM)
    result.consume_output("../../etc/passwd", "text/plain", io.BytesIO(b"x"))

    assert (tmp_path / "out" / "passwd").exists()


def test_fallback_names_without_suggestion(tmp_path):
    result, _ = _result(tmp_path)

    result.accept_output(OutputKind.HLL)
    result.consume_output(None, "text/x-c", io.BytesIO(b"a"))
    result.accept_output(OutputKind.CFGS, "main")
    result.consume_output(None, "image/png", io.BytesIO(b"b"))

    assert (tmp_path / "out" / "job-1.hll").read_bytes() == b"a"
    assert (tmp_path / "out" / "job-1.cfgs.main").read_bytes() == b"b"


def test_kind_filter(tmp_path):
    result, _ = _result(tmp_path, kinds=[OutputKind.DSM])

    assert not result.accept_output(OutputKind.HLL)
    assert result.accept_output(OutputKind.DSM)


def test_progress_lines(tmp_path):
    result, log = _result(tmp_path)

    result.phase_change(Phase.model_validate(phase("Decompiling", 42, description="Decompiling")))
    result.phase_change(Phase.model_validate(phase("fileinfo", 5, warnings=["odd"], description="Getting file info")))
    result.finished()

    lines = log.getvalue().splitlines()
    assert lines[0] == "Started decompilation with unique identifier job-1"
    assert lines[1] == "[ 42] Decompiling"
    assert lines[2] == "[  5] fileinfo Getting file info ! warnings"
    assert lines[3] == "Decompilation finished."
    assert result.succeeded


def test_failure_is_recorded(tmp_path):
    result, log = _result(tmp_path)

    result.failed(RuntimeError("boom"))

    assert not result.succeeded
    assert "Decompilation failed: boom" in log.getvalue()
