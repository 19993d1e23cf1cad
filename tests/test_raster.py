"""
Tests for the PageImage value and the Pillow load/save adapters.
"""

from __future__ import annotations

import unittest

from PIL import Image

from helpers_cli import make_recorder, workspace_temp_dir, write_page

from comic_creator.raster import PageImage, load_image, save_image


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class PageImageTests(unittest.TestCase):
    def test_pixel_length_must_match_dimensions(self) -> None:
        with self.assertRaises(ValueError):
            PageImage(name="p", width=2, height=2, channels=4, pixels=b"\x00" * 15)

    def test_non_positive_size_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PageImage(name="p", width=0, height=2, channels=4, pixels=b"")

    def test_from_pil_keeps_raw_rgba_bytes(self) -> None:
        source = Image.new("RGBA", (3, 2), (1, 2, 3, 4))
        image = PageImage.from_pil("p.png", source)
        self.assertEqual((image.width, image.height, image.channels), (3, 2, 4))
        self.assertEqual(image.pixels, bytes([1, 2, 3, 4]) * 6)
        self.assertEqual(image.to_pil().getpixel((2, 1)), (1, 2, 3, 4))

    def test_from_pil_converts_palette_images(self) -> None:
        image = PageImage.from_pil("p.gif", Image.new("P", (2, 2)))
        self.assertEqual(image.channels, 4)


class LoaderTests(unittest.TestCase):
    def test_missing_file_is_a_logged_failure(self) -> None:
        with workspace_temp_dir("raster") as root:
            recorder = make_recorder()
            result = load_image(root / "missing.png", recorder)

        self.assertFalse(result.ok)
        self.assertIsNone(result.image)
        self.assertIn("does not exist", result.error)
        self.assertIn(" E - ", recorder.console_stream.getvalue())

    def test_corrupt_file_is_a_logged_failure(self) -> None:
        with workspace_temp_dir("raster") as root:
            path = root / "broken.png"
            path.write_bytes(b"not an image at all")
            recorder = make_recorder()
            result = load_image(path, recorder)

        self.assertFalse(result.ok)
        self.assertIn("Failed to load image", result.error)
        self.assertEqual(recorder.logs[-1]["level"], "error")

    def test_rgb_file_loads_as_rgba_at_native_size(self) -> None:
        with workspace_temp_dir("raster") as root:
            path = root / "001.png"
            Image.new("RGB", (30, 17), (9, 8, 7)).save(path)
            recorder = make_recorder()
            result = load_image(path, recorder)

        self.assertTrue(result.ok)
        self.assertEqual(result.image.name, "001.png")
        self.assertEqual(result.image.size, (30, 17))
        self.assertEqual(result.image.channels, 4)
        self.assertEqual(result.image.to_pil().getpixel((0, 0)), (9, 8, 7, 255))
        self.assertEqual(recorder.logs[-1]["level"], "debug")


class SaverTests(unittest.TestCase):
    def test_always_writes_png_and_overwrites(self) -> None:
        with workspace_temp_dir("raster") as root:
            out_path = root / "page.jpg"
            out_path.write_bytes(b"old contents")
            image = PageImage.from_pil("page.jpg", Image.new("RGBA", (4, 4), (0, 0, 0, 0)))

            save_image(image, out_path, make_recorder())

            self.assertEqual(out_path.read_bytes()[:8], PNG_SIGNATURE)
            with Image.open(out_path) as reopened:
                self.assertEqual(reopened.mode, "RGBA")
                self.assertEqual(reopened.size, (4, 4))

    def test_saved_page_loads_back(self) -> None:
        with workspace_temp_dir("raster") as root:
            source = write_page(root / "in.png", size=(5, 6), color=(1, 2, 3, 255))
            recorder = make_recorder()
            loaded = load_image(source, recorder)
            save_image(loaded.image, root / "out.png", recorder)
            again = load_image(root / "out.png", recorder)

        self.assertEqual(again.image.pixels, loaded.image.pixels)


if __name__ == "__main__":
    unittest.main()
