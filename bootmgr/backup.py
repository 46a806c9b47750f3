# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Copy a boot image out of a larger source, e.g. a boot partition.
"""

import logging
import os

from .image import BootImageError, CopyIntegrityFailure, inspect

COPY_CHUNK_SIZE = 2048

logger = logging.getLogger(__name__)


def copy_image(src, dst, size, chunk_size=COPY_CHUNK_SIZE):
    """Copy exactly size bytes from the src stream to the dst stream.

    Raises CopyIntegrityFailure when a chunk is not written completely, the
    source ends early or either stream fails with an OSError.
    """
    if chunk_size < 1:
        raise ValueError("Chunk size must be positive")
    left = size
    while left > 0:
        try:
            buf = src.read(min(chunk_size, left))
        except OSError as e:
            raise CopyIntegrityFailure(
                "Read failed at offset 0x{:x}: {}".format(
                    size - left, e.strerror or e)) from e
        if not buf:
            raise CopyIntegrityFailure(
                "Source ended after {} of {} bytes".format(size - left, size))
        try:
            written = dst.write(buf)
        except OSError as e:
            raise CopyIntegrityFailure(
                "Write failed at offset 0x{:x}: {}".format(
                    size - left, e.strerror or e)) from e
        if written != len(buf):
            raise CopyIntegrityFailure(
                "Short write at offset 0x{:x}: {} of {} bytes".format(
                    size - left, written, len(buf)))
        left -= len(buf)
    logger.debug(f"Copied 0x{size:x} bytes")
    return size


def _same_image(fp, outfile):
    if not os.path.exists(outfile):
        return False
    try:
        other = inspect(outfile)
    except BootImageError as e:
        logger.debug(f"Destination {outfile} will be overwritten: {e}")
        return False
    return other.fingerprint == fp


def backup(imgfile, outfile, chunk_size=COPY_CHUNK_SIZE, info=None):
    """Copy the boot image in imgfile to outfile.

    Nothing is written when outfile already holds a valid boot image with the
    same fingerprint. Returns True when the image was copied. info may carry
    an earlier inspect() result for imgfile.
    """
    if info is None:
        info = inspect(imgfile)
    if _same_image(info.fingerprint, outfile):
        logger.info(f"{outfile} already holds image {info.fingerprint}")
        return False

    with open(imgfile, 'rb') as src:
        dst = open(outfile, 'wb')
        # Buffered write errors may only surface when dst is closed.
        try:
            with dst:
                copy_image(src, dst, info.size, chunk_size)
        except CopyIntegrityFailure as e:
            logger.error(f"Backup of {imgfile} failed: {e}")
            os.remove(outfile)
            raise
        except OSError as e:
            logger.error(f"Backup of {imgfile} failed: {e}")
            os.remove(outfile)
            raise CopyIntegrityFailure("Cannot write {}: {}".format(
                outfile, e.strerror or e)) from e

    logger.info(f"Copied 0x{info.size:x} bytes from {imgfile} to {outfile}")
    return True
