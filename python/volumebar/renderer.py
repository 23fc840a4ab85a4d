"""
Volume bar drawing.
"""

import logging
from dataclasses import dataclass
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarSegment:
    """A full-height rectangle of the bar, in pixels from the left edge"""
    color: tuple
    x0: int
    x1: int


def bar_segments(volume, settings):
    """
    Split the bar into its colored parts

    Args:
        volume (int): Current volume
        settings (VolumeSettings): Resolved volume settings

    Returns:
        list: BarSegment entries, left to right (normal, over-max, background)
    """
    pixel_width = settings.percent_pixel_width
    normal_max = settings.normal_volume_max
    over_max = settings.over_max_volume_max

    segments = []
    if volume > 0:
        segments.append(BarSegment(settings.volume_color, 0, min(volume, normal_max) * pixel_width))
    if volume > normal_max:
        segments.append(BarSegment(settings.over_max_color, normal_max * pixel_width, volume * pixel_width))
    if volume < over_max:
        segments.append(BarSegment(settings.bg_color, volume * pixel_width, over_max * pixel_width))
    return segments


def render_volume_bar(volume, settings, font):
    """
    Draw the volume bar with its centered numeric label

    Args:
        volume (int): Current volume
        settings (VolumeSettings): Resolved volume settings
        font: PIL font used for the label

    Returns:
        PIL.Image.Image: RGBA image of size bar_width x bar_height
    """
    # Start with a completely transparent image
    image = Image.new("RGBA", (settings.bar_width, settings.bar_height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)

    for segment in bar_segments(volume, settings):
        draw.rectangle(
            [(segment.x0, 0), (segment.x1 - 1, settings.bar_height - 1)],
            fill=segment.color
        )

    label = str(volume)
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    text_x = (settings.bar_width - (right - left)) / 2 - left
    text_y = (settings.bar_height - (bottom - top)) / 2 - top
    draw.text((text_x, text_y), label, font=font, fill=settings.text_color)

    return image


def load_font(settings):
    """Load the label font, using Pillow's built-in font if the file cannot be loaded"""
    try:
        return ImageFont.truetype(settings.font_path, settings.text_size)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading font {settings.font_path}: {e}")
        return ImageFont.load_default()
