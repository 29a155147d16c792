from .io import decode_image, encode_jpeg
from .transform import resize_to_width


__all__ = ["decode_image", "encode_jpeg", "resize_to_width"]
