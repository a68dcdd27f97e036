# main.py
"""Command-line entry point for the Doppler heartbeat synthesiser."""
from __future__ import annotations

import argparse
import logging
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from Assets.Common.Audio.DopplerSynthesis import (
    SynthesisOptions,
    analyze_reference_audio,
    build_acoustic_profile,
    decode_wav,
    list_available_profiles,
    plan_from_timings,
    synthesize,
)
from Assets.Common.gemini import GeminiConfigError, GeminiSettings
from Assets.Common.playback import AudioOutput, PlaybackError

logger = logging.getLogger(__name__)

DEFAULT_BPM = 140.0
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _parse_times(text: str) -> List[float]:
    try:
        return [float(part) for part in text.split(",") if part.strip()]
    except ValueError as error:
        raise argparse.ArgumentTypeError(f"Invalid beat time list: {text}") from error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doppler-heartbeat",
        description="Synthesize a fetal Doppler heartbeat clip as a WAV file",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--bpm",
        type=float,
        default=None,
        help=f"Heart rate in beats per minute (default: {DEFAULT_BPM:.0f})",
    )
    source.add_argument(
        "--image",
        type=Path,
        default=None,
        help="Ultrasound image analysed with Gemini to pick BPM and tone",
    )

    parser.add_argument(
        "--gemini-config",
        type=Path,
        default=None,
        help="JSON file with model, apiKey and systemInstruction for --image",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output WAV path (default: heartbeat-<bpm>bpm.wav)",
    )
    parser.add_argument(
        "-d", "--duration",
        type=float,
        default=8.0,
        help="Clip length in seconds (default: 8.0)",
    )
    parser.add_argument(
        "-s", "--sample-rate",
        type=int,
        default=44100,
        help="Sample rate in Hz (default: 44100)",
    )
    parser.add_argument(
        "--stereo",
        action="store_true",
        help="Render two channels with slight per-channel variation",
    )
    parser.add_argument(
        "--watermark",
        action="store_true",
        help="Embed the inaudible 15 kHz watermark",
    )
    parser.add_argument(
        "-p", "--profile",
        default="baseline",
        help="Acoustic profile name (see --list-profiles)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible output",
    )
    parser.add_argument(
        "--beat-times",
        type=_parse_times,
        default=None,
        help="Comma separated beat onsets in seconds (explicit plan)",
    )
    parser.add_argument(
        "--double-pulse-ms",
        type=float,
        default=None,
        help="Secondary pulse offset for --beat-times in milliseconds",
    )
    parser.add_argument(
        "--reference",
        type=Path,
        default=None,
        help="16-bit PCM WAV recording used to tune timing and noise floor",
    )
    parser.add_argument(
        "--play",
        action="store_true",
        help="Play the clip after writing it (requires PyAudio)",
    )
    parser.add_argument(
        "--list-profiles",
        action="store_true",
        help="List acoustic profiles and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def _build_analyzer(args: argparse.Namespace):
    from Assets.Common.ultrasound import UltrasoundAnalyzer

    if args.gemini_config is None:
        return UltrasoundAnalyzer()
    settings = GeminiSettings.from_file(str(args.gemini_config))
    return UltrasoundAnalyzer(
        client=settings.build_client(),
        model=settings.model,
        config=settings.build_generate_config(),
    )


def _options_from_image(args: argparse.Namespace, profile) -> SynthesisOptions:
    from Assets.Common.ultrasound import analysis_to_options, describe_analysis

    mime_type = mimetypes.guess_type(str(args.image))[0] or "image/jpeg"
    analysis = _build_analyzer(args).analyze(args.image.read_bytes(), mime_type)
    logger.info("Ultrasound analysis: %s", describe_analysis(analysis))
    return analysis_to_options(
        analysis,
        durationSeconds=args.duration,
        sampleRate=args.sample_rate,
        channelCount=2 if args.stereo else 1,
        watermarked=args.watermark,
        baseProfile=profile,
        seed=args.seed,
    )


def _build_options(args: argparse.Namespace) -> SynthesisOptions:
    profile = build_acoustic_profile(args.profile)
    bpm = args.bpm

    if args.reference is not None:
        samples, rate = decode_wav(args.reference.read_bytes())
        reference = analyze_reference_audio(samples, rate)
        logger.info(
            "Reference: %d beats, %.0f bpm, quality %.2f",
            reference.beatCount,
            reference.bpm,
            reference.quality,
        )
        profile = reference.to_acoustic_profile(profile)
        if bpm is None and args.image is None:
            bpm = reference.bpm

    if args.image is not None:
        return _options_from_image(args, profile)

    bpm = DEFAULT_BPM if bpm is None else bpm
    beat_plan = None
    if args.beat_times:
        beat_plan = plan_from_timings(
            args.beat_times,
            doublePulseOffsetMs=args.double_pulse_ms,
            durationSeconds=args.duration,
            profile=profile,
        ).events or None
    return SynthesisOptions(
        bpm=bpm,
        durationSeconds=args.duration,
        sampleRate=args.sample_rate,
        channelCount=2 if args.stereo else 1,
        watermarked=args.watermark,
        beatPlan=beat_plan,
        acousticProfile=profile,
        seed=args.seed,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_profiles:
        for name in list_available_profiles():
            print(name)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    if args.image is not None and not args.image.exists():
        print(f"Error: Image not found: {args.image}", file=sys.stderr)
        return 1
    if args.reference is not None and not args.reference.exists():
        print(f"Error: Reference recording not found: {args.reference}", file=sys.stderr)
        return 1

    try:
        options = _build_options(args)
    except (ValueError, GeminiConfigError) as error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    result = synthesize(options)
    output_path = args.output or Path(result.suggestedFilename)
    output_path.write_bytes(result.wavBytes)

    print(f"BPM: {result.bpm:.1f}")
    print(f"Beats: {result.beatCount} ({'explicit' if result.usedExplicitPlan else 'algorithmic'} plan)")
    print(f"Double pulse: {'yes' if result.hasDoublePulse else 'no'}")
    print(f"Duration: {result.durationSeconds:.2f}s @ {result.sampleRate} Hz x{result.channelCount}")
    print(f"Output: {output_path.resolve()} ({result.byteLength} bytes)")

    if args.play:
        try:
            with AudioOutput() as output:
                output.play(result.wavBytes)
        except PlaybackError as error:
            print(f"Error: {error}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
