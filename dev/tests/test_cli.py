"""
blorbpal - command line and compressor tests

End-to-end runs use real PNGs and --no-compress (or a stand-in oxipng),
so no external binary is needed.

Can be run standalone: python test_cli.py
Or via main runner: python tests.py
"""

import io
import os
import stat
import sys
import tempfile
from contextlib import redirect_stderr
from pathlib import Path

from harness import results, section
from blorb_fixtures import build_blorb, apal_payload, make_png, make_oversized_png

from blorbpal.cli import main, build_parser, ConversionOptions, DEFAULT_OUTPUT
from blorbpal.core import OxipngCompressor, NullCompressor
from blorbpal.utils.binary import IoBuffer
from blorbpal.formats.blorb import BlorbFile, BPalEntry, CodecError, iter_chunks


BLACK, WHITE, RED, GREEN, BLUE = (0, 0, 0), (255, 255, 255), (255, 0, 0), (0, 255, 0), (0, 0, 255)

METADATA = [("IFhd", b"\x01" * 13), ("RelN", b"\x00\x02"), ("APal", apal_payload(20, 21))]


def _write_sample(path: str):
    data = build_blorb(
        metadata=METADATA,
        picts=[
            (1, "PNG ", make_png([BLACK, WHITE, RED, GREEN], [0, 1, 2, 3])),
            (2, "PNG ", make_png([BLACK, WHITE, BLUE, WHITE], [3, 2, 1, 0])),
            (5, "Rect", b"\x00\x00\x01\x00\x00\x00\x00\xc8"),
            (20, "PNG ", make_png([BLACK, WHITE, WHITE, WHITE], [0, 1, 2, 3, 3, 2, 1, 0], transparency=0)),
            (21, "PNG ", make_png([BLACK, WHITE, BLACK, BLACK], [1, 1, 2, 3])),
        ],
    )
    Path(path).write_bytes(data)
    return data


def _run(argv):
    stderr = io.StringIO()
    with redirect_stderr(stderr):
        code = main(argv)
    return code, stderr.getvalue()


def _read_output(data: bytes):
    buffer = IoBuffer.from_bytes(data)
    buffer.seek(20)
    count = buffer.read_uint32()
    entries = [(buffer.read_type_code(), buffer.read_uint32(), buffer.read_uint32()) for _ in range(count)]
    chunks = dict(iter_chunks(buffer, len(data)))
    return entries, chunks


def test_end_to_end():
    section("END TO END")

    with tempfile.TemporaryDirectory() as tmp:
        source = os.path.join(tmp, "game.blb")
        story = os.path.join(tmp, "game.z6")
        output = os.path.join(tmp, "converted.blb")
        original = _write_sample(source)
        Path(story).write_bytes(b"\x06\x00story")

        code, err = _run([source, story, "-o", output, "--no-compress"])
        results.record("Exit 0", code == 0, err)
        results.record("Input untouched", Path(source).read_bytes() == original, "")

        data = Path(output).read_bytes()
        entries, chunks = _read_output(data)
        source_blorb = BlorbFile.from_bytes(original)

        results.record("Size field", int.from_bytes(data[4:8], "big") == len(data) - 8, "")
        for usage, number, start in entries:
            results.record(f"{usage} {number} offset", start in chunks, str(start))

        by_number = {number: chunks[start] for usage, number, start in entries if usage == "Pict"}
        results.record("Original images unchanged",
                       all(by_number[n] == c for n, c in source_blorb.picts.items()), "")

        metadata = [c for c in chunks.values() if c.chunk_type in ("IFhd", "RelN", "APal")]
        results.record("Metadata unchanged", metadata == source_blorb.chunks, str(metadata))

        bpal = BPalEntry.unpack_all(next(c for c in chunks.values() if c.chunk_type == "BPal").data)
        results.record("2 palettes x 2 adaptive", len(bpal) == 4, str(bpal))
        results.record("Results are generated images", all(e.id >= 1000 and e.id in by_number for e in bpal),
                       str(bpal))
        results.record("Generated images present", sorted(by_number)[-1] >= 1000, str(sorted(by_number)))

        exec_entry = entries[-1]
        results.record("Exec bundled", exec_entry[0] == "Exec"
                       and chunks[exec_entry[2]].data == b"\x06\x00story", str(exec_entry))

        # The bundled story adds an Exec RIdx entry, which the reader rejects.
        code, err = _run([output, "-o", os.path.join(tmp, "again.blb"), "--no-compress"])
        results.record("Output with story rejected", code == 1, str(code))
        results.record("Exec usage named", "unknown resource usage: 45786563 (Exec)" in err, err)
        results.record("No output from rejected run", not os.path.exists(os.path.join(tmp, "again.blb")), "")


def test_second_run():
    section("SECOND RUN")

    with tempfile.TemporaryDirectory() as tmp:
        source = os.path.join(tmp, "game.blb")
        output = os.path.join(tmp, "converted.blb")
        again = os.path.join(tmp, "again.blb")
        _write_sample(source)

        code, err = _run([source, "-o", output, "--no-compress"])
        results.record("First run exit 0", code == 0, err)
        results.record("No Exec entry without story",
                       all(usage == "Pict" for usage, _, _ in _read_output(Path(output).read_bytes())[0]), "")

        code, err = _run([output, "-o", again, "--no-compress"])
        results.record("Second run fails", code == 1, str(code))
        results.record("Already processed message", err.strip() == "error: this file already has a BPal chunk", err)
        results.record("No second output", not os.path.exists(again), "")


def test_default_output():
    section("DEFAULT OUTPUT")

    cwd = os.getcwd()
    with tempfile.TemporaryDirectory() as tmp:
        source = os.path.join(tmp, "game.blb")
        _write_sample(source)
        os.chdir(tmp)
        try:
            code, err = _run([source, "--no-compress"])
        finally:
            os.chdir(cwd)
        results.record("Exit 0", code == 0, err)
        results.record(f"Wrote {DEFAULT_OUTPUT}", os.path.exists(os.path.join(tmp, DEFAULT_OUTPUT)), "")


def test_errors():
    section("CLI ERRORS")

    with tempfile.TemporaryDirectory() as tmp:
        source = os.path.join(tmp, "game.blb")
        output = os.path.join(tmp, "out.blb")
        _write_sample(source)

        code, err = _run([source, os.path.join(tmp, "missing.z6"), "-o", output, "--no-compress"])
        results.record("Missing story file", code == 1 and err.startswith("error processing"), err)

        code, err = _run([os.path.join(tmp, "missing.blb"), "-o", output])
        results.record("Missing blorb", code == 1 and "missing.blb" in err, err)

        Path(source).write_bytes(b"FORM\x00\x00\x00\x04JUNK")
        code, err = _run([source, "-o", output])
        results.record("Not a blorb", code == 1 and err.strip() == "error: not a blorb", err)

        Path(source).write_bytes(build_blorb(
            metadata=[("APal", apal_payload(20))],
            picts=[
                (1, "PNG ", make_png([BLACK, WHITE, RED, GREEN], [0, 1, 2, 3])),
                (20, "PNG ", make_oversized_png()),
            ],
        ))
        code, err = _run([source, "-o", output, "--no-compress"])
        results.record("Oversized APal image", code == 1 and err.startswith("error: unable to load image 20:"), err)
        results.record("No output for oversized image", not os.path.exists(output), "")

        stderr = io.StringIO()
        try:
            with redirect_stderr(stderr):
                main([])
            results.record("Usage error exits", False, "no SystemExit")
        except SystemExit as e:
            results.record("Usage error exits 1", e.code == 1, str(e.code))


def test_options():
    section("OPTIONS")

    args = build_parser().parse_args(["a.blb", "--oxipng", "/opt/oxipng", "--level", "3"])
    options = ConversionOptions.from_args(args)
    results.record("Defaults", options.output_path == DEFAULT_OUTPUT and options.exec_path is None, str(options))
    compressor = options.compressor()
    results.record("oxipng backend", isinstance(compressor, OxipngCompressor)
                   and compressor.command == ["/opt/oxipng", "-o3", "-q", "--stdout", "-"], str(compressor.command))

    args = build_parser().parse_args(["a.blb", "--no-compress"])
    results.record("No compression", isinstance(ConversionOptions.from_args(args).compressor(), NullCompressor), "")


def test_oxipng_compressor():
    section("OXIPNG COMPRESSOR")

    missing = OxipngCompressor(binary="/nonexistent/oxipng")
    results.expect_raises("Missing binary", CodecError, missing.compress, b"png", contains="unable to run")

    # The interpreter rejects oxipng's flags and exits non-zero.
    failing = OxipngCompressor(binary=sys.executable)
    results.expect_raises("Non-zero exit", CodecError, failing.compress, b"png", contains="exited")

    if os.name != "posix":
        results.skip("Stand-in oxipng", "needs /bin/sh")

    with tempfile.TemporaryDirectory() as tmp:
        script = Path(tmp) / "oxipng"
        script.write_text("#!/bin/sh\ncat\n")
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        results.record("Output read from stdout", OxipngCompressor(binary=str(script)).compress(b"png") == b"png", "")

        empty = Path(tmp) / "empty"
        empty.write_text("#!/bin/sh\ncat > /dev/null\n")
        empty.chmod(empty.stat().st_mode | stat.S_IEXEC)
        results.expect_raises("Empty output", CodecError, OxipngCompressor(binary=str(empty)).compress, b"png",
                              contains="produced no output")

        source = os.path.join(tmp, "game.blb")
        output = os.path.join(tmp, "out.blb")
        _write_sample(source)
        code, err = _run([source, "-o", output, "--oxipng", str(script)])
        results.record("Run with compressor", code == 0, err)


if __name__ == "__main__":
    import harness
    sys.exit(harness.main(globals()))
