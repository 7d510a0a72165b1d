import shutil
import unittest
import uuid

from minipdf.jpeg import JpegInfo, parse_jpeg_header, read_jpeg

from pdf_fixtures import SCRATCH_ROOT, make_jpeg


class TestJpegHeader(unittest.TestCase):
    def test_baseline_frame(self):
        info = parse_jpeg_header(make_jpeg(640, 480))
        self.assertEqual(info, JpegInfo(width=640, height=480, components=3, bits_per_component=8))
        self.assertEqual(info.color_space, "DeviceRGB")

    def test_progressive_frame_and_grayscale(self):
        info = parse_jpeg_header(make_jpeg(33, 17, components=1, sof_marker=0xC2))
        self.assertEqual((info.width, info.height), (33, 17))
        self.assertEqual(info.color_space, "DeviceGray")

    def test_frame_without_app_segment(self):
        info = parse_jpeg_header(make_jpeg(8, 8, with_app0=False, precision=12))
        self.assertEqual(info.bits_per_component, 12)

    def test_fill_bytes_and_standalone_markers_are_skipped(self):
        data = make_jpeg(10, 20, with_app0=False)
        # SOI, then fill bytes and a restart marker before the frame header.
        data = data[:2] + b"\xff\xff" + b"\xff\xd0" + data[2:]
        info = parse_jpeg_header(data)
        self.assertEqual((info.width, info.height), (10, 20))

    def test_scan_before_frame_header(self):
        data = b"\xff\xd8" + b"\xff\xda\x00\x08\x01\x01\x00\x00\x3f\x00" + b"\xff\xd9"
        self.assertIsNone(parse_jpeg_header(data))

    def test_not_a_jpeg(self):
        self.assertIsNone(parse_jpeg_header(b"\x89PNG\r\n\x1a\n"))
        self.assertIsNone(parse_jpeg_header(b""))

    def test_truncated_frame_header(self):
        data = make_jpeg(10, 10)
        sof = data.index(b"\xff\xc0")
        self.assertIsNone(parse_jpeg_header(data[: sof + 6]))

    def test_cmyk_color_space(self):
        self.assertEqual(JpegInfo(1, 1, components=4).color_space, "DeviceCMYK")


class TestReadJpeg(unittest.TestCase):
    def test_read_existing_and_missing_files(self):
        SCRATCH_ROOT.mkdir(parents=True, exist_ok=True)
        path = SCRATCH_ROOT / f"jpeg_{uuid.uuid4().hex}.jpg"
        try:
            path.write_bytes(make_jpeg(12, 34))
            data, info = read_jpeg(path)
            self.assertEqual(data, path.read_bytes())
            self.assertEqual((info.width, info.height), (12, 34))

            with self.assertLogs("minipdf.jpeg", level="WARNING") as cm:
                self.assertIsNone(read_jpeg(path.with_name("missing.jpg")))
            self.assertIn("Image not found", cm.output[0])

            path.write_bytes(b"not an image")
            with self.assertLogs("minipdf.jpeg", level="WARNING"):
                self.assertIsNone(read_jpeg(path))
        finally:
            path.unlink(missing_ok=True)
            if SCRATCH_ROOT.exists() and not any(SCRATCH_ROOT.iterdir()):
                shutil.rmtree(SCRATCH_ROOT, ignore_errors=True)


if __name__ == "__main__":
    unittest.main()
