from .preprocess import (
    PreprocessingCapture,
    contrast_variant,
    load_image,
    ocr_variants,
    threshold_variant,
    to_gray,
    trim_left_icons,
)

__all__ = [
    "PreprocessingCapture",
    "contrast_variant",
    "load_image",
    "ocr_variants",
    "threshold_variant",
    "to_gray",
    "trim_left_icons",
]
