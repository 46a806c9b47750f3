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

import pytest

from tests.constants import build_image, make_header


@pytest.fixture
def write_image(tmp_path):
    """Write a boot image built from the given header fields to a file."""

    def _write(filename="boot.img", trailing=b"", **fields):
        hdr = make_header(**fields)
        data = build_image(hdr, trailing)
        path = tmp_path / filename
        path.write_bytes(data)
        return path, hdr, data

    return _write
