"""
Derivatives are data objects deterministically generated from stored originals.
Here that is one JPEG thumbnail per photo, stored under the photo's id in the
derived namespace.
"""
from .transform import resize_image, resize_stream
from .worker import DerivationWorker, JobOutcome, JobState, run_workers
