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

import pytest

from macroplace.Errors import MissingTimingData
from macroplace.TimingGraph import LibertyCell, LibertyPort, NetworkInstance, TimingGraph


def test_wire_and_cell_edges(builder):
    _, sta = (
        builder.macro("A", pins={"Z": "n1"})
        .cell("u1", "BUF", {"A": "n1", "Z": "n2"})
        .macro("B", pins={"A": "n2"})
        .build()
    )
    a_z = sta.find_pin("A", "Z")
    u_a = sta.find_pin("u1", "A")
    u_z = sta.find_pin("u1", "Z")
    b_a = sta.find_pin("B", "A")
    assert sta.successors(a_z.vertex) == [u_a.vertex]
    assert sta.successors(u_a.vertex) == [u_z.vertex]
    assert sta.predecessors(b_a.vertex) == [u_z.vertex]

    levels = sta.ensure_levelized()
    assert levels[a_z.vertex] < levels[u_a.vertex] < levels[u_z.vertex] < levels[b_a.vertex]


def test_register_arc_is_not_searchable(builder):
    _, sta = (
        builder.cell("r1", "DFF", {"D": "d", "CK": "clk", "Q": "q"})
        .port("clk", "input", "clk", 0, 1, is_clock=True)
        .build()
    )
    ck = sta.find_pin("r1", "CK")
    q = sta.find_pin("r1", "Q")
    assert any(e.kind == "register" and e.dst == q.vertex for e in sta.out_edges[ck.vertex])
    assert q.vertex not in sta.successors(ck.vertex)


def test_find_seq_out_pin_resolves_internal_state(builder):
    _, sta = builder.cell("r1", "DFF", {"D": "d", "CK": "clk", "Q": "q"}).build()
    assert sta.find_seq_out_pin("r1", "IQ").name == "r1/Q"
    assert sta.find_seq_out_pin("r1", "Q").name == "r1/Q"


def test_clock_pins(builder):
    _, sta = (
        builder.cell("u1", "BUF", {"A": "clk", "Z": "gclk"})
        .cell("r1", "DFF", {"D": "d", "CK": "gclk", "Q": "q"})
        .port("clk", "input", "clk", 0, 1, is_clock=True)
        .build()
    )
    assert sta.is_clock(sta.find_pin("r1", "CK"))
    assert sta.is_clock(sta.find_pin("u1", "A"))
    assert not sta.is_clock(sta.find_pin("r1", "D"))


def test_missing_liberty_raises(builder):
    _, sta = builder.macro("A", pins={"Z": "n1"}).build(with_liberty=False)
    assert sta.is_missing_liberty()
    assert sta.missing_liberty_cells() == ["RAM"]
    with pytest.raises(MissingTimingData):
        sta.ensure_levelized()


def test_combinational_loop_is_broken(caplog):
    inv = LibertyCell(
        "INV",
        {"A": LibertyPort("A", "input"), "Z": LibertyPort("Z", "output")},
        arcs=[("A", "Z")],
    )
    sta = TimingGraph(
        [
            NetworkInstance("u1", "INV", {"A": "n2", "Z": "n1"}),
            NetworkInstance("u2", "INV", {"A": "n1", "Z": "n2"}),
        ],
        [],
        {"INV": inv},
    )
    levels = sta.ensure_levelized()
    assert len(levels) == 4
    assert sum(1 for e in sta.edges if e.is_loop) == 1
    assert "loop" in caplog.text


def test_bfs_visits_by_level(builder):
    _, sta = (
        builder.macro("A", pins={"Z": "n1"})
        .cell("u1", "BUF", {"A": "n1", "Z": "n2"})
        .cell("u2", "BUF", {"A": "n2", "Z": "n3"})
        .macro("B", pins={"A": "n3"})
        .build()
    )
    bfs = sta.bfs_forward()
    bfs.enqueue(sta.find_pin("u2", "A").vertex)
    bfs.enqueue(sta.find_pin("u1", "A").vertex)
    order = []
    while bfs.has_next():
        vertex = bfs.next()
        order.append(sta.vertex_pin(vertex).name)
        bfs.enqueue_adjacent_vertices(vertex)
    assert order == ["u1/A", "u1/Z", "u2/A", "u2/Z", "B/A"]
