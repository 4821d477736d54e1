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

from macroplace.Layout import (
    CoreEdge,
    Layout,
    core_edge_from_index,
    core_edge_index,
    core_edge_string,
    find_nearest_edge,
)

CORE = Layout(0, 0, 10, 10)


@pytest.mark.parametrize(
    "x, y, edge",
    [
        (0, 5, CoreEdge.WEST),
        (10, 5, CoreEdge.EAST),
        (5, 10, CoreEdge.NORTH),
        (5, 0, CoreEdge.SOUTH),
        (2, 4, CoreEdge.WEST),
        (7, 9, CoreEdge.NORTH),
    ],
)
def test_nearest_edge(x, y, edge):
    assert find_nearest_edge(CORE, x, y) == edge


def test_tie_west_wins_over_east():
    assert find_nearest_edge(Layout(0, 0, 10, 100), 5, 50) == CoreEdge.WEST


def test_tie_west_wins_over_south():
    assert find_nearest_edge(CORE, 0, 0) == CoreEdge.WEST


def test_tie_east_wins_over_north():
    assert find_nearest_edge(CORE, 10, 10) == CoreEdge.EAST


def test_tie_north_wins_over_south():
    assert find_nearest_edge(Layout(0, 0, 10, 2), 5, 1) == CoreEdge.NORTH


def test_unplaced_pin_goes_west(caplog):
    assert find_nearest_edge(CORE, None, None, "in0") == CoreEdge.WEST
    assert "in0" in caplog.text


def test_core_edge_helpers():
    assert [core_edge_string(e) for e in CoreEdge] == ["West", "East", "North", "South"]
    assert core_edge_from_index(2) == CoreEdge.NORTH
    assert core_edge_index(CoreEdge.SOUTH) == 3


def test_edge_points_are_side_midpoints():
    layout = Layout(2, 0, 12, 4)
    assert layout.edge_point(CoreEdge.WEST) == (2, 2)
    assert layout.edge_point(CoreEdge.EAST) == (12, 2)
    assert layout.edge_point(CoreEdge.NORTH) == (7, 4)
    assert layout.edge_point(CoreEdge.SOUTH) == (7, 0)


def test_intersect_and_copy_are_values():
    a = Layout(0, 0, 10, 10)
    b = a.intersect(Layout(5, -5, 20, 5))
    assert b == Layout(5, 0, 10, 5)
    c = b.copy()
    c.lx = 7
    assert b.lx == 5
    assert not Layout(0, 0, 1, 1).intersect(Layout(2, 2, 3, 3)).is_valid()
