class GeoRenderError(Exception):
    """Base exception for georender errors."""
    pass


class ConfigurationError(GeoRenderError):
    """Invalid or unreadable run configuration (intrinsics, storage paths)."""
    pass


class TileLoadError(GeoRenderError):
    """A single terrain tile could not be loaded."""

    def __init__(self, coords, message: str = ""):
        self.coords = coords
        super().__init__(f"Unable to load tile {coords}: {message}")


class TileNotFoundError(TileLoadError):
    """No raster file exists for the requested tile."""
    pass


class TileFormatError(TileLoadError):
    """The raster exists but is not encoded as expected."""
    pass


class OutsideFieldOfViewError(GeoRenderError, ValueError):
    """The pixel cannot be unprojected since it lies outside the camera's field of view."""

    def __init__(self, pixel):
        self.pixel = pixel
        super().__init__(f"Point not in FOV: {pixel}")
