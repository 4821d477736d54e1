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

##
# @file   DesignIO.py
# @brief  Read a design from JSON and write macro locations back
#

import json
import time
import logging

from macroplace.Database import BoundaryPin, Instance, LayoutDatabase
from macroplace.Errors import ConfigError
from macroplace.TimingGraph import (
    LibertyCell,
    LibertyPort,
    NetworkInstance,
    Sequential,
    TimingGraph,
    TopPort,
)


def _read_library(data):
    library = {}
    for name, cell in data.items():
        ports = {
            port_name: LibertyPort(
                port_name,
                port.get("direction", "input"),
                bool(port.get("is_clock", False)),
                port.get("function"),
            )
            for port_name, port in cell.get("ports", {}).items()
        }
        sequentials = [
            Sequential(seq["clock"], list(seq.get("data", [])), seq["output"])
            for seq in cell.get("sequentials", [])
        ]
        library[name] = LibertyCell(
            name,
            ports,
            [tuple(arc) for arc in cell.get("arcs", [])],
            sequentials,
            bool(cell.get("is_macro", False)),
        )
    return library


def read_design(filename):
    """
    @brief read core area, instances, top-level ports and liberty cells
    @param filename JSON design file
    @return (LayoutDatabase, TimingGraph)
    """
    tt = time.time()
    try:
        with open(filename, "r") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError("cannot read design: %s" % (e.strerror), filename)
    except ValueError as e:
        raise ConfigError("malformed JSON: %s" % (e), filename)

    try:
        db = LayoutDatabase(data["core"], data.get("dbu_per_micron", 1000))
        instances = []
        for item in data.get("instances", []):
            db.add_instance(
                Instance(
                    item["name"],
                    item["master"],
                    item.get("x", 0.0),
                    item.get("y", 0.0),
                    item["width"],
                    item["height"],
                    bool(item.get("is_block", False)),
                    item.get("status", "PLACED"),
                )
            )
            instances.append(
                NetworkInstance(
                    item["name"],
                    item["master"],
                    dict(item.get("pins", {})),
                    dict(item.get("directions", {})),
                )
            )
        ports = []
        for item in data.get("ports", []):
            db.add_boundary_pin(
                BoundaryPin(
                    item["name"],
                    item["direction"],
                    item.get("net"),
                    item.get("x"),
                    item.get("y"),
                    bool(item.get("is_clock", False)),
                )
            )
            ports.append(
                TopPort(
                    item["name"],
                    item["direction"],
                    item.get("net"),
                    bool(item.get("is_clock", False)),
                )
            )
        library = _read_library(data.get("library", {}))
    except (KeyError, TypeError) as e:
        raise ConfigError("incomplete design entry: %s" % (e), filename)

    sta = TimingGraph(instances, ports, library)
    logging.info(
        "read design %s with %d instances, %d ports, %d liberty cells, takes %.3f seconds"
        % (filename, db.num_instances, len(ports), len(library), time.time() - tt)
    )
    return db, sta


def write_placement(db, filename):
    """
    @brief dump every instance location and status
    """
    data = {
        "core": db.core.to_list(),
        "instances": [
            {
                "name": inst.name,
                "x": inst.x,
                "y": inst.y,
                "status": inst.status,
            }
            for inst in (db.instance(handle) for handle in db.instances())
        ],
    }
    with open(filename, "w") as f:
        json.dump(data, f, indent=2)
    logging.info("write placement to %s" % (filename))
