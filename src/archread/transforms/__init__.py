from .merge import SeriesMerger, merge_series
from .postprocess import PostProcessor
from .resample import resample
from .trim import trim_trailing

__all__ = ["PostProcessor", "SeriesMerger", "merge_series", "resample", "trim_trailing"]
