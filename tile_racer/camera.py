from dataclasses import dataclass
from typing import Tuple

from .constants import DEFAULT_VIEWPORT_SIZE


@dataclass(frozen=True)
class CameraView:
    x: float  # World offset of the viewport's top-left corner
    y: float
    width: int
    height: int


def _clamp_axis(center: float, viewport: float, map_bound: float) -> float:
    # Floor of 0 wins when the map is smaller than the viewport
    return max(0.0, min(center - viewport / 2, map_bound - viewport))


def compute_camera_view(position: Tuple[float, float],
                        viewport_size: Tuple[int, int],
                        map_bounds: Tuple[float, float]) -> CameraView:
    """
    Viewport centred on a position and clamped to the map.

    Args:
        position: World position to follow
        viewport_size: (width, height) of the visible window
        map_bounds: (width, height) of the map in world units

    Returns:
        CameraView whose offset stays within [0, map_bound - viewport] per axis
    """
    return CameraView(
        x=_clamp_axis(position[0], viewport_size[0], map_bounds[0]),
        y=_clamp_axis(position[1], viewport_size[1], map_bounds[1]),
        width=viewport_size[0],
        height=viewport_size[1],
    )


class Camera:
    def __init__(self, window_size: Tuple[int, int] = DEFAULT_VIEWPORT_SIZE):
        self.window_size = window_size
        self.view = CameraView(0.0, 0.0, window_size[0], window_size[1])

    def set_window_size(self, window_size: Tuple[int, int]):
        """Update window size; takes effect on the next follow()"""
        self.window_size = window_size

    def follow(self, position: Tuple[float, float], map_bounds: Tuple[float, float]) -> CameraView:
        """Recompute the view around a position"""
        self.view = compute_camera_view(position, self.window_size, map_bounds)
        return self.view

    def set_view(self, view: CameraView):
        self.view = view

    @property
    def offset(self) -> Tuple[float, float]:
        return (self.view.x, self.view.y)

    def world_to_screen(self, world_pos: Tuple[float, float]) -> Tuple[int, int]:
        """Convert world coordinates to screen coordinates"""
        return (int(world_pos[0] - self.view.x), int(world_pos[1] - self.view.y))

    def screen_to_world(self, screen_pos: Tuple[int, int]) -> Tuple[float, float]:
        """Convert screen coordinates to world coordinates"""
        return (screen_pos[0] + self.view.x, screen_pos[1] + self.view.y)
