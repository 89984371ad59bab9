# Utils package - Image and concurrency helpers
from .images import resize_screenshot_if_needed, image_url_to_base64
from .concurrency import gather_in_chunks, gather_or_cancel

__all__ = [
    "resize_screenshot_if_needed",
    "image_url_to_base64",
    "gather_in_chunks",
    "gather_or_cancel",
]
