"""Command line decoding of cassette recordings into tape images."""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Sequence

from . import __version__
from .errors import DegenerateSignalError, SignalReadError
from .pipeline import DemodParams, DemodResult, demodulate
from .pulses import detect_periods, estimate_threshold, period_histogram
from .samples import normalize_samples
from .symbols import data_bits
from .tapeimage import (
    IMAGE_FORMATS,
    TaggedBlock,
    encode_image,
    pack_bits,
    render_bits,
    write_image,
)
from .wav import WavCapture, read_wav

logger = logging.getLogger(__name__)


@dataclass
class DecodeResult:
    output_dir: Path
    manifest: dict


def _safe_mkdir(path: Path, force: bool = False) -> None:
    if path.exists():
        if not force:
            raise FileExistsError(
                f"Output directory {path} already exists; use --force to overwrite"
            )
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _capture_info(capture: WavCapture) -> dict:
    return {
        "path": str(capture.path),
        "channel_count": capture.channel_count,
        "sample_rate": capture.sample_rate,
        "subtype": capture.subtype,
        "encoding": capture.raw.encoding.value,
        "samples": len(capture.raw),
        "duration_seconds": round(capture.duration_seconds, 3),
    }


def _metadata_blocks(capture: WavCapture, result: DemodResult) -> list[TaggedBlock]:
    info = {
        "source": capture.path.name,
        "sample_rate": capture.sample_rate,
        "threshold": result.threshold,
        "chunks": len(result.chunks),
    }
    return [
        TaggedBlock("FSKT", __version__.encode("ascii")),
        TaggedBlock("INFO", json.dumps(info, sort_keys=True).encode("utf-8")),
    ]


class TapeDecoder:
    """High-level coordinator for one WAV-to-image run."""

    def __init__(
        self,
        wav_path: Path,
        output_dir: Path,
        *,
        channel: int = 0,
        params: DemodParams | None = None,
        image_format: str = "chunked",
        dump_bits: bool = False,
        write_manifest: bool = True,
        force: bool = False,
    ) -> None:
        self.wav_path = Path(wav_path)
        self.output_dir = Path(output_dir)
        self.channel = channel
        self.params = params or DemodParams()
        self.image_format = image_format
        self.dump_bits = dump_bits
        self.write_manifest = write_manifest
        self.force = force

    def run(self) -> DecodeResult:
        capture = read_wav(self.wav_path, channel=self.channel)
        result = demodulate(capture.raw, capture.sample_rate, self.params)

        _safe_mkdir(self.output_dir, force=self.force)
        blocks = _metadata_blocks(capture, result) if self.image_format == "tagged" else ()
        image = encode_image(result.chunks, self.image_format, blocks)
        image_path = self.output_dir / "tape.bin"
        logger.info("Writing %s image to %s", self.image_format, image_path)
        write_image(image_path, image)

        if self.dump_bits:
            (self.output_dir / "bits.txt").write_text(render_bits(result.symbols))
            write_image(self.output_dir / "bits.bin", pack_bits(data_bits(result.symbols)))

        manifest: dict = {
            "input": _capture_info(capture),
            "params": asdict(self.params),
            "image": {
                "path": str(image_path),
                "format": self.image_format,
                "bytes": len(image),
            },
            "periods": len(result.periods),
            "threshold": result.threshold,
            "bits": len(data_bits(result.symbols)),
            "gaps_ms": result.gap_durations_ms,
            "chunks": [
                {
                    "index": idx,
                    "irg_duration_ms": chunk.irg_duration_ms,
                    "length": len(chunk.payload),
                }
                for idx, chunk in enumerate(result.chunks)
            ],
        }
        if self.write_manifest:
            (self.output_dir / "manifest.json").write_text(
                json.dumps(manifest, indent=2)
            )

        return DecodeResult(output_dir=self.output_dir, manifest=manifest)


def _params_from_args(args: argparse.Namespace) -> DemodParams:
    return replace(
        DemodParams(),
        noise_threshold=args.noise_threshold,
        gap_min_pulses=args.gap_pulses,
        chunk_size=args.chunk_size,
        keep_partial=not args.drop_partial,
    )


def _print_periods(args: argparse.Namespace) -> int:
    capture = read_wav(args.wav, channel=args.channel)
    samples = normalize_samples(capture.raw)
    periods = detect_periods(samples, threshold=args.noise_threshold)
    print(f"Channel count: {capture.channel_count}")
    print(f"Sampling rate: {capture.sample_rate}Hz")
    print(f"Samples: {len(samples)} ({capture.raw.encoding.value})")
    print(f"Pulses: {len(periods)}")
    hist = period_histogram(periods)
    peak = max(hist.values(), default=0)
    for length, count in hist.items():
        bar = "#" * max(1, round(40 * count / peak))
        print(f"  {length:3d} samples: {count:7d} {bar}")
    threshold = estimate_threshold([p.length_samples for p in periods])
    print(f"Threshold: {threshold:.2f} samples")
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fsktape")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--debug", action="store_true", help="Log per-stage diagnostics"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    decode = subparsers.add_parser(
        "decode", help="Demodulate a WAV recording into a tape image"
    )
    decode.add_argument("wav", type=Path, help="Input WAV recording")
    decode.add_argument("--out", required=True, type=Path, help="Output directory")
    decode.add_argument(
        "--format",
        dest="image_format",
        choices=IMAGE_FORMATS,
        default="chunked",
        help="Tape image layout",
    )
    decode.add_argument("--channel", type=int, default=0, help="Channel to decode")
    decode.add_argument(
        "--noise-threshold",
        type=float,
        default=DemodParams.noise_threshold,
        help="Minimum amplitude drop between accepted pulses",
    )
    decode.add_argument(
        "--gap-pulses",
        type=int,
        default=DemodParams.gap_min_pulses,
        help="Short pulses in a row that count as an inter-record gap",
    )
    decode.add_argument(
        "--chunk-size",
        type=int,
        default=DemodParams.chunk_size,
        help="Bytes per data chunk",
    )
    decode.add_argument(
        "--drop-partial",
        action="store_true",
        help="Discard a trailing chunk shorter than --chunk-size",
    )
    decode.add_argument(
        "--dump-bits",
        action="store_true",
        help="Also write bits.txt and bits.bin with the reconstructed bit stream",
    )
    decode.add_argument(
        "--no-json",
        dest="write_json",
        action="store_false",
        help="Skip manifest.json",
    )
    decode.add_argument(
        "--force",
        action="store_true",
        help="Allow overwriting an existing output directory",
    )

    periods = subparsers.add_parser(
        "periods", help="Print the pulse period histogram and threshold"
    )
    periods.add_argument("wav", type=Path, help="Input WAV recording")
    periods.add_argument("--channel", type=int, default=0, help="Channel to scan")
    periods.add_argument(
        "--noise-threshold",
        type=float,
        default=DemodParams.noise_threshold,
        help="Minimum amplitude drop between accepted pulses",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "decode":
        if args.chunk_size <= 0:
            parser.error(f"--chunk-size must be positive, got {args.chunk_size}")
        if args.gap_pulses < 0:
            parser.error(f"--gap-pulses must not be negative, got {args.gap_pulses}")

    try:
        if args.command == "periods":
            return _print_periods(args)

        if args.command == "decode":
            decoder = TapeDecoder(
                wav_path=args.wav,
                output_dir=args.out,
                channel=args.channel,
                params=_params_from_args(args),
                image_format=args.image_format,
                dump_bits=args.dump_bits,
                write_manifest=args.write_json,
                force=args.force,
            )
            result = decoder.run()
            image = result.manifest["image"]
            print(
                f"Wrote {len(result.manifest['chunks'])} chunks "
                f"({image['bytes']} bytes, {image['format']}) to {image['path']}"
            )
            return 0
    except SignalReadError as exc:
        print(f"ERROR: failed to read audio data: {exc}", file=sys.stderr)
        return 1
    except DegenerateSignalError as exc:
        print(f"ERROR: cannot demodulate signal: {exc}", file=sys.stderr)
        return 1
    except FileExistsError as exc:
        print(f"ERROR: output directory in the way: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"ERROR: writing output failed: {exc}", file=sys.stderr)
        return 1

    parser.error(f"Unknown command {args.command}")
    return 1


__all__ = ["TapeDecoder", "DecodeResult", "main", "build_arg_parser"]
