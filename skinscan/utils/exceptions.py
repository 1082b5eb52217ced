class SkinScanError(Exception):
    """Base exception for the skin scan pipeline"""
    pass


class FrameFormatError(SkinScanError):
    """Frame is not an HxWx3 or HxWx4 pixel array"""
    pass


class MetricsError(SkinScanError):
    """Metric scores or records are incomplete or malformed"""
    pass


class RefinementError(SkinScanError):
    """Remote refinement call failed or returned a malformed record"""
    pass


class CaptureError(SkinScanError):
    """Video source could not be opened or read"""
    pass
