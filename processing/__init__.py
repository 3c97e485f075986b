"""
Image processing built on the image core
"""

from processing.kernel import Kernel, gaussian_2d

__all__ = ["Kernel", "gaussian_2d"]
