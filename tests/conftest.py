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

"""Shared builders for small designs used across the test suite."""

import pytest

from macroplace.Database import BoundaryPin, Instance, LayoutDatabase
from macroplace.TimingGraph import (
    LibertyCell,
    LibertyPort,
    NetworkInstance,
    Sequential,
    TimingGraph,
    TopPort,
)


def make_library():
    """RAM macro, buffer and D flip-flop with an internal state port."""
    ram = LibertyCell(
        "RAM",
        {
            "A": LibertyPort("A", "input"),
            "Z": LibertyPort("Z", "output"),
            "CK": LibertyPort("CK", "input", is_clock=True),
        },
        is_macro=True,
    )
    buf = LibertyCell(
        "BUF",
        {"A": LibertyPort("A", "input"), "Z": LibertyPort("Z", "output")},
        arcs=[("A", "Z")],
    )
    dff = LibertyCell(
        "DFF",
        {
            "D": LibertyPort("D", "input"),
            "CK": LibertyPort("CK", "input", is_clock=True),
            "Q": LibertyPort("Q", "output", function="IQ"),
            "QN": LibertyPort("QN", "output", function="!IQ"),
            "IQ": LibertyPort("IQ", "internal"),
        },
        sequentials=[Sequential("CK", ["D"], "IQ")],
    )
    return {cell.name: cell for cell in (ram, buf, dff)}


class DesignBuilder(object):
    """Accumulates instances and ports, then builds the database and timing graph."""

    def __init__(self, core=(0, 0, 10, 10)):
        self.core = core
        self.library = make_library()
        self.instances = []
        self.ports = []

    def macro(self, name, x=0.0, y=0.0, w=2.0, h=2.0, pins=None, status="PLACED"):
        self.instances.append(
            (Instance(name, "RAM", x, y, w, h, True, status), dict(pins or {}))
        )
        return self

    def cell(self, name, master, pins, x=0.0, y=0.0):
        self.instances.append(
            (Instance(name, master, x, y, 1.0, 1.0, False), dict(pins))
        )
        return self

    def port(self, name, direction, net, x=None, y=None, is_clock=False):
        self.ports.append(BoundaryPin(name, direction, net, x, y, is_clock))
        return self

    def build(self, with_liberty=True):
        db = LayoutDatabase(self.core)
        network = []
        for inst, pins in self.instances:
            db.add_instance(inst)
            cell = self.library[inst.master]
            directions = {port: cell.ports[port].direction for port in pins}
            network.append(NetworkInstance(inst.name, inst.master, pins, directions))
        top = []
        for pin in self.ports:
            db.add_boundary_pin(pin)
            top.append(TopPort(pin.name, pin.direction, pin.net, pin.is_clock))
        sta = TimingGraph(network, top, self.library if with_liberty else {})
        return db, sta


@pytest.fixture
def builder():
    return DesignBuilder()


@pytest.fixture
def two_macro_design():
    """A drives B through net n1 inside a 10x10 core."""
    return (
        DesignBuilder()
        .macro("A", pins={"Z": "n1"})
        .macro("B", pins={"A": "n1"})
        .build()
    )


@pytest.fixture
def make_builder():
    return DesignBuilder
