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
Android boot image header parsing, validation and size computation.

Only the legacy (version 0) header is handled. The header is packed and
little-endian:

    offset  size  field
         0     8  magic ("ANDROID!")
         8     4  kernel_size
        12     4  kernel_addr
        16     4  ramdisk_size
        20     4  ramdisk_addr
        24     4  second_size
        28     4  second_addr
        32     4  tags_addr
        36     4  page_size
        40     8  unused[2]
        48    16  name
        64   512  cmdline
       576    32  id[8]
"""

import logging
import os
import struct
from collections import namedtuple
from enum import Enum

BOOT_MAGIC = b"ANDROID!"
BOOT_MAGIC_SIZE = len(BOOT_MAGIC)
BOOT_NAME_SIZE = 16
BOOT_ARGS_SIZE = 512
BOOT_ID_WORDS = 8
DEFAULT_PAGE_SIZE = 2048

# Only the leading id words take part in the fingerprint.
FINGERPRINT_WORDS = 5

HEADER_FORMAT = '<{}s10I{}s{}s{}I'.format(BOOT_MAGIC_SIZE, BOOT_NAME_SIZE,
                                          BOOT_ARGS_SIZE, BOOT_ID_WORDS)
IMAGE_HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

HEADER_ITEMS = ("magic", "kernel_size", "kernel_addr", "ramdisk_size",
                "ramdisk_addr", "second_size", "second_addr", "tags_addr",
                "page_size", "unused", "name", "cmdline", "id")

VerifyResult = Enum('VerifyResult', ['OK', 'NOT_A_BOOT_IMAGE'])

logger = logging.getLogger(__name__)


class BootImageError(Exception):
    """Base class of every boot image failure."""


class SourceUnreadable(BootImageError):
    pass


class ShortRead(BootImageError):
    pass


class NotABootImage(BootImageError):
    pass


class BadAlignmentConfig(BootImageError):
    pass


class CopyIntegrityFailure(BootImageError):
    pass


def _pad(value, size, field):
    if isinstance(value, str):
        value = value.encode('utf-8')
    if len(value) > size:
        raise ValueError("{} is longer than {} bytes".format(field, size))
    return bytes(value) + bytes(size - len(value))


def _cstr(buf):
    return buf.split(b'\0', 1)[0].decode('latin-1')


class BootImageHeader(namedtuple('BootImageHeader', HEADER_ITEMS)):
    """Decoded legacy boot image header.

    `unused` and `id` hold tuples of 32-bit words, `name` and `cmdline` the
    raw NUL padded buffers.
    """

    __slots__ = ()

    @classmethod
    def decode(cls, data):
        """Decode the header from the first IMAGE_HEADER_SIZE bytes of data"""
        if len(data) < IMAGE_HEADER_SIZE:
            raise ShortRead("Header needs {} bytes, got {}".format(
                IMAGE_HEADER_SIZE, len(data)))
        fields = struct.unpack(HEADER_FORMAT, bytes(data[:IMAGE_HEADER_SIZE]))
        return cls(*fields[:9],
                   unused=tuple(fields[9:11]),
                   name=fields[11],
                   cmdline=fields[12],
                   id=tuple(fields[13:]))

    @classmethod
    def from_fields(cls, magic=BOOT_MAGIC, kernel_size=0, kernel_addr=0,
                    ramdisk_size=0, ramdisk_addr=0, second_size=0,
                    second_addr=0, tags_addr=0, page_size=DEFAULT_PAGE_SIZE,
                    unused=(0, 0), name=b'', cmdline=b'', id=()):
        """Build a header, padding name, cmdline and id to their sizes"""
        if len(id) > BOOT_ID_WORDS:
            raise ValueError("id has more than {} words".format(BOOT_ID_WORDS))
        return cls(magic=_pad(magic, BOOT_MAGIC_SIZE, "magic"),
                   kernel_size=kernel_size, kernel_addr=kernel_addr,
                   ramdisk_size=ramdisk_size, ramdisk_addr=ramdisk_addr,
                   second_size=second_size, second_addr=second_addr,
                   tags_addr=tags_addr, page_size=page_size,
                   unused=tuple(unused),
                   name=_pad(name, BOOT_NAME_SIZE, "name"),
                   cmdline=_pad(cmdline, BOOT_ARGS_SIZE, "cmdline"),
                   id=tuple(id) + (0,) * (BOOT_ID_WORDS - len(id)))

    def encode(self):
        return struct.pack(HEADER_FORMAT, self.magic, self.kernel_size,
                           self.kernel_addr, self.ramdisk_size,
                           self.ramdisk_addr, self.second_size,
                           self.second_addr, self.tags_addr, self.page_size,
                           *self.unused, self.name, self.cmdline, *self.id)

    def name_str(self):
        return _cstr(self.name)

    def cmdline_str(self):
        return _cstr(self.cmdline)


def _read_exact(f, size):
    data = b""
    while len(data) < size:
        chunk = f.read(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def read_header(source):
    """Read and decode the header at offset 0 of a path or binary stream.

    Partial reads are retried until the header is complete or the stream
    reaches EOF.
    """
    if isinstance(source, (str, os.PathLike)):
        try:
            with open(source, 'rb') as f:
                data = _read_exact(f, IMAGE_HEADER_SIZE)
        except OSError as e:
            raise SourceUnreadable("Cannot read {}: {}".format(
                os.fsdecode(source), e.strerror or e)) from e
    else:
        try:
            data = _read_exact(source, IMAGE_HEADER_SIZE)
        except OSError as e:
            raise SourceUnreadable("Cannot read image: {}".format(e)) from e
    return BootImageHeader.decode(data)


def validate(header):
    if header.magic != BOOT_MAGIC:
        logger.debug(f"Magic mismatch: {header.magic!r}")
        return VerifyResult.NOT_A_BOOT_IMAGE
    if header.kernel_size < 1 or header.ramdisk_size < 1:
        logger.debug(f"Empty segment: kernel_size={header.kernel_size} "
                     f"ramdisk_size={header.ramdisk_size}")
        return VerifyResult.NOT_A_BOOT_IMAGE
    return VerifyResult.OK


def align_up(num, align):
    if align == 0 or align & (align - 1) != 0:
        raise BadAlignmentConfig(
            "Page size {} is not a power of two".format(align))
    return (num + (align - 1)) & ~(align - 1)


def image_size(header):
    """Return the number of bytes the image occupies, starting at offset 0.

    Header, kernel and ramdisk are each padded to a page. The second stage
    size is added as is, without padding.
    """
    page = header.page_size
    header_region = align_up(IMAGE_HEADER_SIZE, page)
    kernel_region = align_up(header.kernel_size, page)
    ramdisk_region = align_up(header.ramdisk_size, page)
    logger.debug(f"Regions: header=0x{header_region:x} "
                 f"kernel=0x{kernel_region:x} ramdisk=0x{ramdisk_region:x} "
                 f"second=0x{header.second_size:x}")
    return header_region + kernel_region + ramdisk_region + header.second_size


def fingerprint(id_words):
    """Format the leading id words as one uppercase hex string.

    Words are not zero padded, so different ids can give the same string,
    e.g. (0x1, 0x23) and (0x12, 0x3). This is an equality token for backups,
    not a content digest.
    """
    return "".join("{:X}".format(w) for w in id_words[:FINGERPRINT_WORDS])


InspectResult = namedtuple('InspectResult', ['header', 'size', 'fingerprint'])


def inspect(source):
    """Read, validate and size a boot image."""
    header = read_header(source)
    if validate(header) != VerifyResult.OK:
        raise NotABootImage("Not a boot image")
    return InspectResult(header, image_size(header), fingerprint(header.id))
