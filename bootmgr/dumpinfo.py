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
Parse and print the header and segment layout of a boot image.
"""
import os.path

import click
import yaml

from bootmgr import image

_LINE_LENGTH = 60
_LABEL_WIDTH = 15


def parse_size(size):
    return "{} ({})".format(hex(size), size)


def print_in_frame(header_text, content):
    sepc = " "
    header = "#### " + header_text + sepc
    post_header = "#" * (_LINE_LENGTH - len(header))
    print(header + post_header)

    print("|", sepc * (_LINE_LENGTH - 2), "|", sep="")
    offset = (_LINE_LENGTH - len(content)) // 2
    pre = "|" + (sepc * (offset - 1))
    post = sepc * (_LINE_LENGTH - len(pre) - len(content) - 1) + "|"
    print(pre, content, post, sep="")
    print("|", sepc * (_LINE_LENGTH - 2), "|", sep="")
    print("#" * _LINE_LENGTH)


def print_in_row(row_text):
    row_text = "#### " + row_text + " "
    fill = "#" * (_LINE_LENGTH - len(row_text))
    print(row_text + fill)


def header_fields(info):
    """Return the printable header fields, in on-disk order."""
    hdr = info.header
    return {
        "Magic": hdr.magic.decode('latin-1'),
        "ID": info.fingerprint,
        "Kernel size": parse_size(hdr.kernel_size),
        "Kernel addr": hex(hdr.kernel_addr),
        "Ramdisk size": parse_size(hdr.ramdisk_size),
        "Ramdisk addr": hex(hdr.ramdisk_addr),
        "Second size": parse_size(hdr.second_size),
        "Second addr": hex(hdr.second_addr),
        "Tags addr": hex(hdr.tags_addr),
        "Page size": parse_size(hdr.page_size),
        "Name": hdr.name_str(),
        "Cmdline": hdr.cmdline_str(),
    }


def segments(hdr):
    """Yield (name, offset, size) of every non-empty payload segment."""
    off = image.align_up(image.IMAGE_HEADER_SIZE, hdr.page_size)
    for name, size in (("Kernel", hdr.kernel_size),
                       ("Ramdisk", hdr.ramdisk_size),
                       ("Second stage", hdr.second_size)):
        if size:
            yield name, off, size
        off += image.align_up(size, hdr.page_size)


def _yaml_data(info):
    hdr = info.header
    return {"header": {"magic": hdr.magic.decode('latin-1'),
                       "kernel_size": hdr.kernel_size,
                       "kernel_addr": hdr.kernel_addr,
                       "ramdisk_size": hdr.ramdisk_size,
                       "ramdisk_addr": hdr.ramdisk_addr,
                       "second_size": hdr.second_size,
                       "second_addr": hdr.second_addr,
                       "tags_addr": hdr.tags_addr,
                       "page_size": hdr.page_size,
                       "name": hdr.name_str(),
                       "cmdline": hdr.cmdline_str(),
                       "id": list(hdr.id)},
            "fingerprint": info.fingerprint,
            "size": info.size}


def dump_imginfo(imgfile, outfile=None, silent=False):
    """Parse a boot image and print/save the available information."""
    try:
        info = image.inspect(imgfile)
    except image.SourceUnreadable as e:
        raise click.UsageError(str(e))

    if outfile is not None:
        with open(outfile, "w") as outf:
            yaml.dump(_yaml_data(info), outf, sort_keys=False)

    if silent:
        return info

    print("Printing content of boot image:", os.path.basename(imgfile), "\n")

    print_in_row("Boot image header (offset: 0x0)")
    for key, value in header_fields(info).items():
        print(key, ":", " " * (_LABEL_WIDTH - len(key)), value, sep="")
    print("#" * _LINE_LENGTH)

    for name, off, size in segments(info.header):
        frame_header_text = "{} (offset: {})".format(name, hex(off))
        frame_content = "{} (size: {} Bytes)".format(name.lower(), hex(size))
        print_in_frame(frame_header_text, frame_content)

    print_in_row("End of Image (size: {})".format(hex(info.size)))
    return info
