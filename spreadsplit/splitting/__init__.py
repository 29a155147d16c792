"""Cut detected spreads into page records and run the upload pipeline."""

from .crop import crop_box, crop_half, make_thumbnail, to_pixel
from .pages import CropWindow, Page
from .splitter import SpreadSplitter
from .upload import UploadResult, convert_jp2_to_jpeg, process_image_upload


__all__ = [
    "CropWindow",
    "Page",
    "SpreadSplitter",
    "UploadResult",
    "convert_jp2_to_jpeg",
    "crop_box",
    "crop_half",
    "make_thumbnail",
    "process_image_upload",
    "to_pixel",
]
