#!/usr/bin/env python3
# -*- coding: utf-8
"""Flexibility score of a trajectory: the mean RMSD of all frames to the frame which is
closest to the mean atom positions.

The trajectory is never held in memory. Instead it is read four times (frame count, mean
positions, closest frame, mean RMSD), so that at any time only the frame currently read, the
mean frame and the closest frame are kept.
"""

import argparse
from contextlib import contextmanager
import logging
import sys
from typing import NamedTuple, Optional, Tuple

import daiquiri
import numpy as np

from ..IO.trajectory_parser import Frame, HeaderTrajectory, as_file
from ..config import configurable, load_config
from ..exceptions import (FlexcalcError, ConfigurationError, EmptyTrajectoryError,
                          ShapeMismatchError)
from ..misc.tools import timer


logger = logging.getLogger(__name__)


class FlexibilityResult(NamedTuple):
    score: float
    frame_count: int
    mean_frame: Frame
    closest_frame: Frame
    closest_rmsd: float


def rmsd(frame1: Frame, frame2: Frame) -> float:
    """
    Root mean square deviation between the atom positions of two frames.
    No superposition is done; atom i of frame1 is compared to atom i of frame2.

    Raises
    ------
    ShapeMismatchError
        If the frames hold a different number of atoms, or no atoms at all.
        The error names the header of frame2, or of frame1 if frame2 has none.
    """
    p, q = frame1.atom_positions, frame2.atom_positions
    header = frame2.header if frame2.header is not None else frame1.header
    if p.shape != q.shape:
        raise ShapeMismatchError(header, p.shape[0], q.shape[0])
    if p.shape[0] == 0:
        raise ShapeMismatchError(header, "at least 1", 0)
    dist = p - q
    return float(np.sqrt((dist * dist).sum() / p.shape[0]))


@timer
def accumulate_mean(trajectory: HeaderTrajectory, frame_count: int) -> Frame:
    """
    Average the atom positions over all frames.

    The first frame determines the number of atoms. Each frame is divided by frame_count
    before it is added to the mean, which keeps the running sum at the magnitude of the
    coordinates themselves.
    """
    frames = iter(trajectory)
    first_frame = next(frames, None)
    frames.close()
    if first_frame is None:
        raise EmptyTrajectoryError()
    if first_frame.atom_number == 0:
        raise ShapeMismatchError(first_frame.header, "at least 1", 0)

    mean_frame = Frame.zeros_like(first_frame)
    mean_positions = mean_frame.atom_positions
    for frame in trajectory:
        if frame.atom_number != mean_frame.atom_number:
            raise ShapeMismatchError(frame.header, mean_frame.atom_number, frame.atom_number)
        mean_positions += frame.atom_positions / frame_count
    return mean_frame


@timer
def select_closest(trajectory: HeaderTrajectory,
                   mean_frame: Frame) -> Tuple[Optional[Frame], Optional[float]]:
    """Find the frame with the lowest RMSD to mean_frame.
    On ties the earliest frame is kept. Returns (None, None) for an empty trajectory."""
    closest_frame, lowest_rmsd = None, None
    for frame in trajectory:
        deviation = rmsd(mean_frame, frame)
        if closest_frame is None or deviation < lowest_rmsd:
            closest_frame, lowest_rmsd = frame, deviation
    return closest_frame, lowest_rmsd


@timer
def mean_rmsd(trajectory: HeaderTrajectory, closest_frame: Frame, frame_count: int) -> float:
    total_rmsd = 0.0
    for frame in trajectory:
        total_rmsd += rmsd(closest_frame, frame)
    return total_rmsd / frame_count


@contextmanager
def fatal_stage(message):
    """Label shape mismatches with the analysis step during which they occurred"""
    try:
        yield
    except ShapeMismatchError as err:
        err.message = message
        raise


@configurable("Trajectory", exclude=("file",))
def calculate_flexibility(file, *, header_marker: str = ">",
                          strict: bool = True) -> FlexibilityResult:
    """Determine the mean RMSD of all frames to the frame closest to the mean positions

    Parameters
    ----------
    file: str or file object
        Trajectory filename, or an open and seekable file
    header_marker: str
        Character sequence at the start of each frame header line
    strict: bool
        If False, malformed coordinate lines are read leniently instead of raising
        a FrameParseError
    """
    if not header_marker:
        raise ConfigurationError("header marker must not be empty")

    with as_file(file) as f:
        trajectory = HeaderTrajectory(f, header_marker=header_marker, strict=strict)

        frame_count = len(trajectory)
        if frame_count == 0:
            raise EmptyTrajectoryError()
        logger.info("Trajectory contains %i frames", frame_count)

        with fatal_stage("unable to calculate mean coordinates"):
            mean_frame = accumulate_mean(trajectory, frame_count)

        with fatal_stage("couldn't find closest frame"):
            closest_frame, closest_rmsd = select_closest(trajectory, mean_frame)
        if closest_frame is None:
            raise FlexcalcError("couldn't find closest frame")
        logger.info("Closest frame to mean: %s (RMSD %.4f)", closest_frame.header, closest_rmsd)

        with fatal_stage("unable to calculate mean RMSD"):
            score = mean_rmsd(trajectory, closest_frame, frame_count)
        logger.info("Mean RMSD: %f", score)

    return FlexibilityResult(score, frame_count, mean_frame, closest_frame, closest_rmsd)


@configurable("Output", exclude=("score",))
def format_score(score, precision: int = 4):
    """Format of the printed flexibility score"""
    if precision < 0:
        raise ConfigurationError("precision must not be negative", f" (got {precision})")
    return f"{score:.{precision}f}"


class HelpOnErrorParser(argparse.ArgumentParser):
    """Prints the help text to stdout and exits successfully if the arguments are unusable"""
    def error(self, message):
        self.print_help(sys.stdout)
        self.exit(0)


def main(argv=None):
    parser = HelpOnErrorParser(
        prog="flexcalc",
        description="Calculate the flexibility of a trajectory as the mean RMSD of all frames "
                    "to the frame closest to the mean atom positions")
    parser.add_argument("filename", help="Trajectory file. Each frame starts with a header line "
                                         "followed by one 'x y z' line per atom")
    parser.add_argument("--config", "-c", help="INI file with [Trajectory] and [Output] sections")
    parser.add_argument("--marker", help="Character sequence starting a header line (default >)")
    parser.add_argument("--lenient", action="store_true",
                        help="Read malformed coordinate lines leniently instead of aborting")
    parser.add_argument("--precision", type=int, help="Decimal places of the output (default 4)")
    parser.add_argument("--closest", action="store_true",
                        help="Also print the header of the frame closest to the mean")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--log", "-l", default="warning", help="Set log level")
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, args.log.upper(), None)
    if not isinstance(level, int):
        parser.error(f"Unknown log level {args.log}")
    daiquiri.setup(level=level)

    try:
        options = load_config(args.config) if args.config else {}
        trajectory_options = options.get("Trajectory", {})
        output_options = options.get("Output", {})
        if args.marker:
            trajectory_options["header_marker"] = args.marker
        if args.lenient:
            trajectory_options["strict"] = False
        if args.precision is not None:
            output_options["precision"] = args.precision

        result = calculate_flexibility(args.filename, **trajectory_options)
        output = format_score(result.score, **output_options)
    except FlexcalcError as err:
        logger.debug("Abort", exc_info=True)
        print(f"{parser.prog} error: {err}", file=sys.stderr)
        return 1

    print(output)
    if args.closest:
        print(result.closest_frame.header)
    return 0


if __name__ == "__main__":
    sys.exit(main())
