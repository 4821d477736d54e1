# SPDX-FileCopyrightText: Copyright (c) 2022 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import json

import pytest

from macroplace import Params
from macroplace.Errors import ConfigError


def write_json(path, data):
    path.write_text(json.dumps(data))
    return str(path)


def test_defaults_from_params_json():
    params = Params.Params()
    assert params.num_trials == 8
    assert params.register_adjacency_depth == 3
    assert params.macro_halo_x == 0.0
    assert params.fence_region == []
    assert "params_dict" not in params.toJson()


def test_command_line_values_are_decoded():
    params = Params.Params()
    params.load(["--num_trials=3", "--design_input=designs/top.json", "--fence_region=[0, 0, 5, 5]"])
    assert params.num_trials == 3
    assert params.design_input == "designs/top.json"
    assert params.fence_region == [0, 0, 5, 5]
    assert params.design_name() == "top"


def test_update_and_equality():
    a = Params.Params()
    b = Params.Params()
    assert a == b
    b.update({"num_threads": 4})
    assert a != b
    a.update(b)
    assert a == b


def test_help_table_lists_every_parameter():
    params = Params.Params()
    table = params.toMarkdownTable()
    for key in params.params_dict:
        assert key in table


def test_global_config(tmp_path):
    filename = write_json(
        tmp_path / "global.json",
        {"macro_halo_x": 2, "macro_channel_y": 1.5, "fence_region": [0, 0, 50, 40]},
    )
    config = Params.parse_global_config(filename)
    assert config["macro_halo_x"] == 2.0
    assert config["macro_channel_y"] == 1.5
    assert config["fence_region"] == [0.0, 0.0, 50.0, 40.0]


@pytest.mark.parametrize(
    "data",
    [
        {"macro_halo_x": -1},
        {"macro_halo_y": "wide"},
        {"fence_region": [10, 0, 5, 5]},
        {"fence_region": [0, 0, 5]},
        {"halo": 1},
    ],
)
def test_global_config_rejects(tmp_path, data):
    filename = write_json(tmp_path / "global.json", data)
    with pytest.raises(ConfigError) as e:
        Params.parse_global_config(filename)
    assert filename in str(e.value)


def test_global_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        Params.parse_global_config(str(tmp_path / "absent.json"))


def test_local_config(tmp_path):
    filename = write_json(
        tmp_path / "local.json", {"ram0": {"macro_halo_x": 3}, "ram1": {}}
    )
    config = Params.parse_local_config(filename)
    assert config["ram0"] == {"macro_halo_x": 3.0}
    assert config["ram1"] == {}


def test_local_config_rejects_negative(tmp_path):
    filename = write_json(tmp_path / "local.json", {"ram0": {"macro_channel_x": -0.5}})
    with pytest.raises(ConfigError):
        Params.parse_local_config(filename)
