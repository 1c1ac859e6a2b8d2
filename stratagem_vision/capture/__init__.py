from stratagem_vision.capture.screen_capture import ScreenCapture

__all__ = ["ScreenCapture"]
