"""Affine transforms binding a pointer device to one display region"""

from __future__ import annotations

from dataclasses import dataclass

from edidrr.common.errors import DegenerateDeviceRangeError
from edidrr.common.types import DesiredState, Rotation, ScreenSize, ValuatorRange

Row = tuple[float, float, float]


@dataclass(frozen=True)
class Matrix3:
    """Row-major 3x3 matrix acting on homogeneous column vectors"""
    rows: tuple[Row, Row, Row]

    def __matmul__(self, other: "Matrix3") -> "Matrix3":
        rows = tuple(
            tuple(
                sum(self.rows[i][k] * other.rows[k][j] for k in range(3))
                for j in range(3)
            )
            for i in range(3)
        )
        return Matrix3(rows)  # type: ignore[arg-type]

    def point_apply(self, x: float, y: float) -> tuple[float, float]:
        """
        Transform a 2D point

        Args:
            x: Input x
            y: Input y

        Returns:
            Transformed (x, y), divided by the homogeneous coordinate
        """
        tx = self.rows[0][0] * x + self.rows[0][1] * y + self.rows[0][2]
        ty = self.rows[1][0] * x + self.rows[1][1] * y + self.rows[1][2]
        tw = self.rows[2][0] * x + self.rows[2][1] * y + self.rows[2][2]
        return tx / tw, ty / tw

    def values_get(self) -> list[float]:
        """Flatten in row-major order"""
        return [value for row in self.rows for value in row]


def translate_build(x: float, y: float) -> Matrix3:
    return Matrix3(((1.0, 0.0, float(x)), (0.0, 1.0, float(y)), (0.0, 0.0, 1.0)))


def scale_build(sx: float, sy: float) -> Matrix3:
    return Matrix3(((float(sx), 0.0, 0.0), (0.0, float(sy), 0.0), (0.0, 0.0, 1.0)))


# Fixed 2x2 blocks, one per rotation
_ROTATION_BLOCKS: dict[Rotation, tuple[tuple[float, float], tuple[float, float]]] = {
    Rotation.NORMAL: ((1.0, 0.0), (0.0, 1.0)),
    Rotation.RIGHT: ((0.0, -1.0), (1.0, 0.0)),
    Rotation.INVERTED: ((-1.0, 0.0), (0.0, -1.0)),
    Rotation.LEFT: ((0.0, 1.0), (-1.0, 0.0)),
}


def rotate_build(rotation: Rotation) -> Matrix3:
    (a, b), (c, d) = _ROTATION_BLOCKS[rotation]
    return Matrix3(((a, b, 0.0), (c, d, 0.0), (0.0, 0.0, 1.0)))


def deviceRange_validate(device_range: ValuatorRange) -> None:
    """
    Reject a device extent that is zero on either axis

    Raises:
        DegenerateDeviceRangeError: If width or height of the range is zero
    """
    if device_range.width == 0 or device_range.height == 0:
        raise DegenerateDeviceRangeError(
            f"Device range [{device_range.min_x}, {device_range.max_x}] x "
            f"[{device_range.min_y}, {device_range.max_y}] is degenerate"
        )


def transform_build(state: DesiredState, device_range: ValuatorRange) -> Matrix3:
    """
    Build the device-to-screen transform for one display

    The result is Translate(position) x Rotate(rotation) x Scale(mode size),
    applied to device-normalized coordinates in [0, 1].

    Args:
        state: Resolved state of the target display
        device_range: Raw valuator extent reported by the device

    Returns:
        Matrix mapping normalized device coordinates to screen pixels

    Raises:
        DegenerateDeviceRangeError: If the device extent is zero on an axis
    """
    deviceRange_validate(device_range)
    return (
        translate_build(state.position.x, state.position.y)
        @ rotate_build(state.rotation)
        @ scale_build(state.mode.width, state.mode.height)
    )


def canvasNormalized_get(matrix: Matrix3, canvas: ScreenSize) -> Matrix3:
    """
    Re-express a pixel-space transform relative to the whole canvas

    Input-device matrices in X expect output coordinates normalised to the
    screen, not pixels.

    Args:
        matrix: Transform producing canvas pixels
        canvas: Virtual canvas size

    Returns:
        Transform producing canvas-normalized coordinates

    Raises:
        ValueError: If the canvas is empty
    """
    if canvas.isEmpty_check():
        raise ValueError(f"Invalid canvas: {canvas.width}x{canvas.height}")
    return scale_build(1.0 / canvas.width, 1.0 / canvas.height) @ matrix
