import logging
from pathlib import Path

from PIL import Image as PILImage
from PIL import ImageOps

logger = logging.getLogger(__name__)


def fix_image_orientation(img: PILImage.Image) -> PILImage.Image:
    """Apply the EXIF orientation tag so phone photos are not shown sideways."""
    try:
        return ImageOps.exif_transpose(img)
    except Exception as e:
        logger.warning(f"Could not apply EXIF orientation: {e}")
        return img


def flatten_onto_background(img: PILImage.Image, background: str) -> PILImage.Image:
    """Composite any transparency onto the background colour and return an RGB image."""
    if img.mode == 'P' and 'transparency' in img.info:
        img = img.convert('RGBA')

    if img.mode in ('RGBA', 'LA'):
        rgba = img.convert('RGBA')
        base = PILImage.new('RGB', rgba.size, background)
        base.paste(rgba, mask=rgba.getchannel('A'))
        return base

    return img.convert('RGB')


def fit_within(img: PILImage.Image, width: int, height: int) -> PILImage.Image:
    """Shrink to fit inside width x height, keeping aspect ratio. Never enlarges."""
    if img.width <= width and img.height <= height:
        return img
    return ImageOps.contain(img, (width, height), PILImage.Resampling.LANCZOS)


def groom_image(
        src_path: Path,
        dst_path: Path,
        width: int,
        height: int,
        background: str = 'black',
        center: bool = True
) -> Path:
    """
    Turn an arbitrary image into a display-ready PNG slide.

    center=True letterboxes: the image is shrunk (never enlarged) to fit and
    centred on a width x height canvas of the background colour.
    center=False stretches the image to exactly width x height.

    :param src_path: Source image (any format Pillow can read)
    :param dst_path: Where to write the PNG slide
    :return: dst_path
    """
    with PILImage.open(src_path) as img:
        img.load()
        img = fix_image_orientation(img)
        img = flatten_onto_background(img, background)

        if center:
            fitted = fit_within(img, width, height)
            slide = PILImage.new('RGB', (width, height), background)
            x = (width - fitted.width) // 2
            y = (height - fitted.height) // 2
            slide.paste(fitted, (x, y))
        else:
            slide = img.resize((width, height), PILImage.Resampling.LANCZOS)

    slide.save(dst_path, format='PNG')
    logger.debug(f"Groomed {Path(src_path).name} -> {Path(dst_path).name} ({width}x{height})")
    return Path(dst_path)

