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

from macroplace import DesignIO
from macroplace.Errors import ConfigError

DESIGN = {
    "core": [0, 0, 10, 10],
    "library": {
        "RAM": {
            "is_macro": True,
            "ports": {
                "A": {"direction": "input"},
                "Z": {"direction": "output"},
            },
        },
        "DFF": {
            "ports": {
                "D": {"direction": "input"},
                "CK": {"direction": "input", "is_clock": True},
                "Q": {"direction": "output", "function": "IQ"},
                "IQ": {"direction": "internal"},
            },
            "sequentials": [{"clock": "CK", "data": ["D"], "output": "IQ"}],
        },
    },
    "instances": [
        {"name": "A", "master": "RAM", "x": 1, "y": 1, "width": 2, "height": 2, "is_block": True, "pins": {"Z": "n1"}},
        {"name": "r0", "master": "DFF", "width": 1, "height": 1, "pins": {"D": "n1", "CK": "clk", "Q": "n2"}},
        {"name": "B", "master": "RAM", "x": 6, "y": 6, "width": 2, "height": 2, "is_block": True, "pins": {"A": "n2"}},
    ],
    "ports": [
        {"name": "clk", "direction": "input", "net": "clk", "x": 0, "y": 3, "is_clock": True},
        {"name": "out", "direction": "output", "net": "n2"},
    ],
}


def write_design(tmp_path, data=DESIGN):
    path = tmp_path / "top.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_read_design(tmp_path):
    db, sta = DesignIO.read_design(write_design(tmp_path))
    assert db.core.to_list() == [0, 0, 10, 10]
    assert db.num_instances == 3
    assert [db.instance(h).name for h in db.macro_instances()] == ["A", "B"]
    pins = {p.name: p for p in db.boundary_pins()}
    assert pins["clk"].is_placed and not pins["out"].is_placed

    assert not sta.is_missing_liberty()
    assert sta.liberty_cell("r0").has_sequentials
    assert sta.find_seq_out_pin("r0", "IQ").name == "r0/Q"
    assert sta.is_clock(sta.find_pin("r0", "CK"))


def test_write_placement(tmp_path):
    db, _ = DesignIO.read_design(write_design(tmp_path))
    db.set_location(db.find_instance("A"), 4, 5)
    out = tmp_path / "placed.json"
    DesignIO.write_placement(db, str(out))
    data = json.loads(out.read_text())
    placed = {inst["name"]: inst for inst in data["instances"]}
    assert (placed["A"]["x"], placed["A"]["y"], placed["A"]["status"]) == (4, 5, "LOCKED")
    assert placed["B"]["status"] == "PLACED"


def test_incomplete_design(tmp_path):
    with pytest.raises(ConfigError):
        DesignIO.read_design(write_design(tmp_path, {"instances": []}))


def test_malformed_design(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{")
    with pytest.raises(ConfigError):
        DesignIO.read_design(str(path))
