import logging
from contextlib import contextmanager
from enum import Enum
from io import IOBase
from typing import Iterator, List, Optional, Tuple, IO

import numpy as np

from ..exceptions import TrajectorySourceError, FrameParseError, FrameAllocationError


logger = logging.getLogger(__name__)


@contextmanager
def as_file(file_or_string):
    """Allows handling of filenames or files in the same way."""
    need_to_close = False
    # If the input is no file, try to open it
    if not isinstance(file_or_string, IOBase):
        logger.debug("Try to open filename %s", file_or_string)
        try:
            file = open(file_or_string, "r", encoding="utf-8")
        except OSError as e:
            raise TrajectorySourceError("unable to open trajectory",
                                        f" ({file_or_string}: {e.strerror})") from e
        need_to_close = True
    else:
        file = file_or_string

    try:
        yield file
    finally:
        if need_to_close:
            file.close()


def read_line(file: IO) -> str:
    """Read the next line. Bytes which are not valid text abort the analysis. Files are
    decoded in chunks, so the error cannot name the offending line."""
    try:
        return file.readline()
    except UnicodeDecodeError as e:
        raise TrajectorySourceError("unable to decode trajectory",
                                    f" ({getattr(file, 'name', file)}: {e.reason})") from e


def rewind(file: IO):
    """Set the file cursor back to the start. Pipes and other one-shot streams are rejected,
    as every analysis pass has to read the trajectory from the beginning."""
    if not file.seekable():
        raise TrajectorySourceError("trajectory source cannot be rewound",
                                    f" ({getattr(file, 'name', file)})")
    file.seek(0)


class Frame:
    """Atom positions of a single time step, together with the header label that introduced
    them in the trajectory file"""
    def __init__(self, positions: np.ndarray, header: Optional[str] = None):
        self._positions = positions
        self._header = header

    @classmethod
    def zeros_like(cls, frame: "Frame"):
        """Frame of the same shape as `frame`, with all positions set to zero and no header"""
        return cls(np.zeros_like(frame.atom_positions, dtype=np.float64))

    def __repr__(self):
        lines = "\n".join([f"{atompos[0]:20.10f} {atompos[1]:20.10f} {atompos[2]:20.10f}"
                           for atompos in self.atom_positions])
        return f">{self.header or ''}\n{lines}"

    @property
    def atom_positions(self):
        return self._positions

    @property
    def atom_number(self):
        return self._positions.shape[0]

    @property
    def header(self):
        return self._header


def parse_coordinates(line: str, line_number: int, strict: bool = True) -> Tuple[float, ...]:
    """
    Read the x, y and z value of a coordinate line.

    Parameters
    ----------
    line:
        Line without trailing newline
    line_number:
        Position of the line in the file, used for error reporting
    strict:
        If True, a line without three leading floats raises a FrameParseError.
        Otherwise, floats are read until the first failure and the remaining components
        are set to zero.
    """
    fields = line.split()
    if strict:
        if len(fields) < 3:
            raise FrameParseError(line_number, line)
        try:
            return tuple(float(x) for x in fields[:3])
        except ValueError as e:
            raise FrameParseError(line_number, line) from e

    values = [0.0, 0.0, 0.0]
    for i, field in enumerate(fields[:3]):
        try:
            values[i] = float(field)
        except ValueError:
            logger.debug("Could not read component %i in line %i: %s", i, line_number, line)
            break
    return tuple(values)


class ReaderState(Enum):
    AWAITING_FIRST_HEADER = 0
    IN_FRAME = 1
    EOF = 2


class FrameReader:
    """Reads one frame after another from a text trajectory of the form

        >header
        x y z
        x y z
        >header
        ...

    A frame consists of all coordinate lines between two header lines. The header belonging
    to a frame is the one preceding it; since the reader only knows that a frame has ended
    once it sees the next header, that header is kept as pending header for the following
    call of `read_frame`.
    """
    def __init__(self, file: IO, *, header_marker: str = ">", strict: bool = True) -> None:
        self.file = file
        self.header_marker = header_marker
        self.strict = strict
        self.reset()

    def reset(self):
        """Rewind the file and return to the state before the first header"""
        rewind(self.file)
        self.state = ReaderState.AWAITING_FIRST_HEADER
        self._pending_header = None
        self._line_number = 0

    def read_frame(self) -> Optional[Frame]:
        """Return the next frame, or None once the end of the file is reached."""
        if self.state is ReaderState.EOF:
            return None

        header = self._pending_header
        coordinates = []  # type: List[Tuple[float, ...]]

        while True:
            line = read_line(self.file)
            if not line:
                break
            self._line_number += 1
            line = line.rstrip("\r\n")

            if line.startswith(self.header_marker):
                label = line[len(self.header_marker):].strip()
                logger.debug("Header %s in line %i", label, self._line_number)
                if self.state is ReaderState.AWAITING_FIRST_HEADER:
                    self.state = ReaderState.IN_FRAME
                    header = label
                    continue
                self._pending_header = label
                return self._make_frame(header, coordinates)

            if not line.strip():
                continue

            if self.state is ReaderState.AWAITING_FIRST_HEADER:
                logger.debug("Skip line %i before first header", self._line_number)
                continue

            coordinates.append(parse_coordinates(line, self._line_number, strict=self.strict))

        last_state, self.state = self.state, ReaderState.EOF
        if last_state is ReaderState.IN_FRAME:
            return self._make_frame(header, coordinates)
        return None

    def _make_frame(self, header, coordinates):
        try:
            positions = np.array(coordinates, dtype=np.float64).reshape((-1, 3))
        except MemoryError as e:
            raise FrameAllocationError(header) from e
        return Frame(positions, header)

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.read_frame()
            if frame is None:
                return
            yield frame


def count_frames(file: IO, *, header_marker: str = ">") -> int:
    """Count the header lines of a trajectory file. The file is rewound afterwards."""
    rewind(file)
    frame_count = 0
    line_number = 0
    while True:
        line = read_line(file)
        if not line:
            break
        line_number += 1
        if line.startswith(header_marker):
            frame_count += 1
        if line_number % 100000 == 0:
            logger.debug("Line %i", line_number)
    rewind(file)
    return frame_count


class HeaderTrajectory:
    def __init__(self, file: IO, *, header_marker: str = ">", strict: bool = True) -> None:
        """
        Parameters
        ----------
        file:
            Open, seekable trajectory file
        header_marker:
            Character sequence at the start of a line which introduces a new frame
        strict:
            Raise an error on malformed coordinate lines instead of reading them leniently
        """
        self.file = file
        self.header_marker = header_marker
        self.strict = strict
        self._current_frame_number = 0

    def reader(self) -> FrameReader:
        """Create a fresh frame reader bound to the rewound file"""
        return FrameReader(self.file, header_marker=self.header_marker, strict=self.strict)

    def __iter__(self) -> Iterator[Frame]:
        self._current_frame_number = 0
        for frame in self.reader():
            if self._current_frame_number % 1000 == 0:
                logger.debug("Reading frame %i", self._current_frame_number)
            yield frame
            self._current_frame_number += 1
        logger.debug("Reached end of file")
        rewind(self.file)

    @property
    def current_frame_number(self):
        return self._current_frame_number

    def __len__(self):
        logger.debug("Determining length (number of frames) of trajectory")
        return count_frames(self.file, header_marker=self.header_marker)
