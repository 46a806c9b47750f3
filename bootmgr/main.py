#! /usr/bin/env python3
#
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

import logging
import sys

import click

from bootmgr import image, bootmgr_version
from bootmgr.backup import COPY_CHUNK_SIZE, backup as backup_image
from bootmgr.dumpinfo import dump_imginfo

MIN_PYTHON_VERSION = (3, 6)
if sys.version_info < MIN_PYTHON_VERSION:
    sys.exit("Python %s.%s or newer is required by bootmgr."
             % MIN_PYTHON_VERSION)


def not_a_correct_image(imgfile):
    print("{} is not a correct image.".format(imgfile))
    sys.exit(1)


def inspect_image(imgfile):
    try:
        return image.inspect(imgfile)
    except image.SourceUnreadable as e:
        raise click.UsageError(str(e))
    except (image.ShortRead, image.NotABootImage,
            image.BadAlignmentConfig):
        not_a_correct_image(imgfile)


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return int(value, 0)
        except ValueError:
            self.fail('%s is not a valid integer. Please use code literals '
                      'prefixed with 0b/0B, 0o/0O, or 0x/0X as necessary.'
                      % value, param, ctx)


def validate_chunk_size(ctx, param, value):
    if value < 1:
        raise click.BadParameter("Chunk size must be at least 1 byte")
    return value


@click.argument('imgfile')
@click.option('-o', '--outfile', metavar='filename', required=False,
              help='Save image information to outfile in YAML format')
@click.option('-s', '--silent', default=False, is_flag=True,
              help='Do not print image information to output')
@click.command(help='Print all header fields, the ID and the segment '
                    'layout of a boot image')
def dumpinfo(imgfile, outfile, silent):
    try:
        dump_imginfo(imgfile, outfile, silent)
    except (image.ShortRead, image.NotABootImage,
            image.BadAlignmentConfig):
        not_a_correct_image(imgfile)
    if not silent:
        print("dumpinfo has run successfully")


@click.argument('imgfile')
@click.command(help='Print the ID of a boot image')
def checksum(imgfile):
    info = inspect_image(imgfile)
    print(info.fingerprint)


@click.argument('outfile')
@click.argument('imgfile')
@click.option('--chunk-size', type=BasedIntParamType(),
              default=COPY_CHUNK_SIZE, callback=validate_chunk_size,
              help='Number of bytes copied at once (default {})'.format(
                  COPY_CHUNK_SIZE))
@click.command(help='''Copy the boot image in IMGFILE to OUTFILE\n
               The copy is skipped if OUTFILE already holds a boot image
               with the same ID''')
def backup(imgfile, outfile, chunk_size):
    info = inspect_image(imgfile)
    try:
        copied = backup_image(imgfile, outfile, chunk_size, info)
    except image.CopyIntegrityFailure as e:
        raise click.ClickException("Copy failed: {}".format(e))
    except OSError as e:
        raise click.FileError(e.filename or outfile, hint=e.strerror)
    if copied:
        print("Image copied to {}".format(outfile))
    else:
        print("{} already holds the same image, skipping".format(outfile))


@click.command(help='Print bootmgr version information')
def version():
    print(bootmgr_version)


class AliasesGroup(click.Group):

    _aliases = {
        "dump": "dumpinfo",
        "copy": "backup",
    }

    def list_commands(self, ctx):
        cmds = [k for k in self.commands]
        aliases = [k for k in self._aliases]
        return sorted(cmds + aliases)

    def get_command(self, ctx, cmd_name):
        rv = click.Group.get_command(self, ctx, cmd_name)
        if rv is not None:
            return rv
        if cmd_name in self._aliases:
            return click.Group.get_command(self, ctx, self._aliases[cmd_name])
        return None


@click.option('-v', '--verbose', default=False, is_flag=True,
              help='Print debug messages')
@click.command(cls=AliasesGroup,
               context_settings=dict(help_option_names=['-h', '--help']))
def bootmgr(verbose):
    logging.basicConfig(format='%(levelname)5s: %(message)s',
                        level=logging.DEBUG if verbose else logging.WARNING,
                        stream=sys.stderr)


bootmgr.add_command(dumpinfo)
bootmgr.add_command(checksum)
bootmgr.add_command(backup)
bootmgr.add_command(version)


if __name__ == '__main__':
    bootmgr()
