"""
Tests for slide grooming

Validates:
- Letterboxing keeps aspect ratio on the background colour
- Small images are never enlarged
- Stretch mode fills the frame
- Transparency is flattened onto the background
- EXIF orientation is applied
"""

from PIL import Image

from announcements_frame.utils.media_utils import groom_image
from conftest import write_image


class TestGroomImage:
    """Test groom_image()."""

    def test_letterbox_wide_image(self, tmp_path):
        """Test that a wide image gets bars above and below."""
        src = write_image(tmp_path / 'wide.png', size=(400, 100), color='red')
        dst = tmp_path / 'out.png'

        groom_image(src, dst, 200, 200, background='blue')

        with Image.open(dst) as slide:
            assert slide.size == (200, 200)
            assert slide.getpixel((100, 100)) == (255, 0, 0)
            assert slide.getpixel((100, 5)) == (0, 0, 255)

    def test_small_image_is_not_enlarged(self, tmp_path):
        """Test that a thumbnail stays its own size, centred."""
        src = write_image(tmp_path / 'small.png', size=(20, 10), color='white')
        dst = tmp_path / 'out.png'

        groom_image(src, dst, 200, 100, background='black')

        with Image.open(dst) as slide:
            assert slide.getpixel((100, 50)) == (255, 255, 255)
            assert slide.getpixel((85, 50)) == (0, 0, 0)

    def test_stretch_fills_frame(self, tmp_path):
        """Test center=False."""
        src = write_image(tmp_path / 'wide.png', size=(400, 100), color='red')
        dst = tmp_path / 'out.png'

        groom_image(src, dst, 200, 200, background='blue', center=False)

        with Image.open(dst) as slide:
            assert slide.size == (200, 200)
            assert slide.getpixel((100, 5)) == (255, 0, 0)

    def test_alpha_is_flattened(self, tmp_path):
        """Test that transparent pixels take the background colour."""
        src = write_image(tmp_path / 'clear.png', size=(50, 50), color=(0, 0, 0, 0), mode='RGBA')
        dst = tmp_path / 'out.png'

        groom_image(src, dst, 50, 50, background='white')

        with Image.open(dst) as slide:
            assert slide.mode == 'RGB'
            assert slide.getpixel((25, 25)) == (255, 255, 255)

    def test_exif_orientation_applied(self, tmp_path):
        """Test that a rotated phone photo is shown upright."""
        src = tmp_path / 'phone.jpg'
        photo = Image.new('RGB', (80, 40), 'green')
        exif = photo.getexif()
        exif[0x0112] = 6  # rotate 90 CW on display
        photo.save(src, exif=exif)
        dst = tmp_path / 'out.png'

        groom_image(src, dst, 100, 100, background='black')

        with Image.open(dst) as slide:
            # 40x80 after transpose, centred: columns 30..69 are photo
            assert slide.getpixel((50, 50))[1] > 100
            assert slide.getpixel((10, 50)) == (0, 0, 0)
