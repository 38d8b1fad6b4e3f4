"""Exception types shared across the engine"""


class ConfigurationError(ValueError):
    """Missing credential, bad style sheet or other structural problem"""


class LayoutExtractionError(ValueError):
    """Vision provider returned nothing usable"""


class RefinementError(RuntimeError):
    """Image-edit task failed or returned no result"""


class RefinementTimeout(RefinementError):
    """Image-edit task did not finish within the polling budget"""


class VideoGenerationError(RuntimeError):
    """Video provider reported a failed operation"""


class CompositorError(RuntimeError):
    """A stitch, encode or mux command exited non-zero"""

    def __init__(self, command, returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        tool = self.command[0] if self.command else "compositor"
        super().__init__(f"{tool} failed with exit code {returncode}: {stderr.strip()[-500:]}")
