"""
Drawing surface for the volume bar and best-effort window manager hints.
"""

import sys
import ctypes
import ctypes.util
import logging
from PIL import Image
from .constants import TK_AVAILABLE

# Optional imports for the on-screen window
if TK_AVAILABLE:
    try:
        import tkinter as tk
        from PIL import ImageTk
    except ImportError:
        TK_AVAILABLE = False

logger = logging.getLogger(__name__)

# Win32 extended window styles
GWL_EXSTYLE = -20
WS_EX_TRANSPARENT = 0x00000020
WS_EX_TOOLWINDOW = 0x00000080
WS_EX_LAYERED = 0x00080000
WS_EX_NOACTIVATE = 0x08000000
WS_EX_APPWINDOW = 0x00040000

# X11 shape extension
SHAPE_SET = 0
SHAPE_INPUT = 2


class OverlaySurface:
    """
    A borderless window the volume bar is drawn on

    Must only be used from the thread that created it. The hint methods
    are optional; a surface that cannot apply one raises NotImplementedError.
    """

    def show(self):
        raise NotImplementedError

    def hide(self):
        raise NotImplementedError

    def set_position(self, x, y):
        raise NotImplementedError

    def set_bounds(self, width, height):
        raise NotImplementedError

    def clear(self):
        """Make the window fully transparent"""
        raise NotImplementedError

    def draw_image(self, image):
        """Replace the window contents with an RGBA image"""
        raise NotImplementedError

    def poll(self):
        """Process pending window events without blocking"""
        raise NotImplementedError

    def closed(self):
        return False

    def destroy(self):
        pass

    def hide_from_taskbar(self):
        raise NotImplementedError

    def make_non_focusable(self):
        raise NotImplementedError

    def set_mouse_pass_through(self):
        raise NotImplementedError

    def set_always_on_top(self):
        raise NotImplementedError


class TkOverlaySurface(OverlaySurface):
    """Overlay surface backed by a tkinter toplevel window"""

    def __init__(self, title="Volume percentage"):
        if not TK_AVAILABLE:
            raise RuntimeError("tkinter/Pillow ImageTk not available")

        self._closed = False
        self._photo = None  # Keep reference to prevent GC
        self._x11_display = None
        self._size = (400, 400)

        self.root = tk.Tk()
        self.root.title(title)
        self.root.overrideredirect(True)  # No window decorations
        self.root.attributes("-topmost", True)
        self.root.configure(bg="black")
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)
        self.label = tk.Label(self.root, bd=0, highlightthickness=0, bg="black")
        self.label.pack(fill="both", expand=True)
        self.root.withdraw()  # Invisible until positioned
        logger.info("Volume bar window created")

    def _on_close(self):
        self._closed = True

    def show(self):
        self.root.deiconify()

    def hide(self):
        self.root.withdraw()

    def set_position(self, x, y):
        self.root.geometry(f"+{int(x)}+{int(y)}")

    def set_bounds(self, width, height):
        self._size = (int(width), int(height))
        self.root.geometry(f"{self._size[0]}x{self._size[1]}")

    def clear(self):
        self.root.attributes("-alpha", 0.0)

    def draw_image(self, image):
        # Tk has no per-pixel alpha, so flatten onto black
        background = Image.new("RGBA", image.size, (0, 0, 0, 255))
        flat = Image.alpha_composite(background, image.convert("RGBA")).convert("RGB")
        self._photo = ImageTk.PhotoImage(flat)
        self.label.configure(image=self._photo)
        self.root.attributes("-alpha", 1.0)

    def poll(self):
        if self._closed:
            return
        try:
            self.root.update()
        except tk.TclError as e:
            logger.warning(f"Volume bar window closed: {e}")
            self._closed = True

    def closed(self):
        return self._closed

    def destroy(self):
        try:
            self.root.destroy()
        except tk.TclError:
            pass
        self._closed = True

    # Native window handles

    def _hwnd(self):
        user32 = ctypes.windll.user32
        hwnd = user32.GetParent(self.root.winfo_id())
        if not hwnd:
            hwnd = user32.GetAncestor(self.root.winfo_id(), 2)  # GA_ROOT
        if not hwnd:
            raise RuntimeError("Could not resolve the native window handle")
        return hwnd

    def _update_ex_style(self, add, remove=0):
        user32 = ctypes.windll.user32
        hwnd = self._hwnd()
        style = user32.GetWindowLongW(hwnd, GWL_EXSTYLE)
        user32.SetWindowLongW(hwnd, GWL_EXSTYLE, (style | add) & ~remove)

    def _x11(self):
        """Return (libX11, libXext, display, window) for the frame window"""
        if self._x11_display is None:
            x11_path = ctypes.util.find_library("X11")
            xext_path = ctypes.util.find_library("Xext")
            if not x11_path or not xext_path:
                raise RuntimeError("libX11/libXext not found")
            libx11 = ctypes.CDLL(x11_path)
            libxext = ctypes.CDLL(xext_path)
            libx11.XOpenDisplay.restype = ctypes.c_void_p
            libx11.XOpenDisplay.argtypes = [ctypes.c_char_p]
            display = libx11.XOpenDisplay(None)
            if not display:
                raise RuntimeError("Could not open the X display")
            self._x11_display = (libx11, libxext, display)
        libx11, libxext, display = self._x11_display
        window = int(self.root.wm_frame(), 16)
        return libx11, libxext, display, window

    # Window manager hints

    def hide_from_taskbar(self):
        if sys.platform == "win32":
            self._update_ex_style(WS_EX_TOOLWINDOW, WS_EX_APPWINDOW)
        else:
            # Override-redirect windows are never managed, so never listed
            self.root.overrideredirect(True)

    def make_non_focusable(self):
        if sys.platform == "win32":
            self._update_ex_style(WS_EX_NOACTIVATE)
        elif self.root.tk.call("tk", "windowingsystem") == "x11":
            self.root.attributes("-type", "notification")
        else:
            raise NotImplementedError

    def set_mouse_pass_through(self):
        if sys.platform == "win32":
            self._update_ex_style(WS_EX_LAYERED | WS_EX_TRANSPARENT)
            return
        if self.root.tk.call("tk", "windowingsystem") != "x11":
            raise NotImplementedError

        # An empty input shape lets every click fall through
        libx11, libxext, display, window = self._x11()
        libxext.XShapeCombineRectangles.argtypes = [
            ctypes.c_void_p, ctypes.c_ulong, ctypes.c_int, ctypes.c_int, ctypes.c_int,
            ctypes.c_void_p, ctypes.c_int, ctypes.c_int, ctypes.c_int,
        ]
        libxext.XShapeCombineRectangles(display, window, SHAPE_INPUT, 0, 0, None, 0, SHAPE_SET, 0)
        libx11.XFlush.argtypes = [ctypes.c_void_p]
        libx11.XFlush(display)

    def set_always_on_top(self):
        self.root.attributes("-topmost", True)
        self.root.lift()


class PlatformHints:
    """
    Applies window hints to a surface, giving up for the session on the first platform failure

    A hint the surface does not implement is skipped on its own; any other
    error means the platform layer is unusable and disables every hint.
    """

    UNAVAILABLE = "Unavailable functionality: Hide from taskbar, make non-focusable, mouse pass-through, keep on top"

    def __init__(self):
        self.surface = None
        self.enabled = False

    def attach(self, surface, enabled=True):
        """
        Bind to a surface and run every hint once to make sure nothing goes wrong

        Args:
            surface (OverlaySurface): Surface to apply hints to
            enabled (bool): False turns all hints off for the session
        """
        self.surface = surface
        if not enabled:
            self.enabled = False
            logger.error("run_extra_window_hints is turned off")
            logger.error(self.UNAVAILABLE)
            return

        self.enabled = True
        self.hide_from_taskbar()
        self.make_non_focusable()
        self.set_mouse_pass_through()
        self.set_always_on_top()

    def _apply(self, name, func):
        if not self.enabled or self.surface is None:
            return False
        try:
            func()
            return True
        except NotImplementedError:
            logger.debug(f"Window hint {name} not supported on this platform")
            return False
        except Exception as e:
            logger.error(f"Failed to apply window hint {name}: {e}")
            logger.error(self.UNAVAILABLE)
            self.enabled = False
            return False

    def hide_from_taskbar(self):
        return self._apply("hide_from_taskbar", lambda: self.surface.hide_from_taskbar())

    def make_non_focusable(self):
        return self._apply("make_non_focusable", lambda: self.surface.make_non_focusable())

    def set_mouse_pass_through(self):
        return self._apply("set_mouse_pass_through", lambda: self.surface.set_mouse_pass_through())

    def set_always_on_top(self):
        return self._apply("set_always_on_top", lambda: self.surface.set_always_on_top())
