from PIL import Image


def resize_to_width(image: Image.Image, max_width: int) -> Image.Image:
    """Downscale so the width is at most ``max_width``; never enlarges."""
    width, height = image.size
    if width <= max_width:
        return image
    new_height = max(1, round(height * max_width / width))
    return image.resize((max_width, new_height), resample=Image.Resampling.LANCZOS)
