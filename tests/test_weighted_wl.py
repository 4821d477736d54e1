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

import numpy as np
import pytest
import torch

from macroplace.ops.weighted_wl.weighted_wl import WeightedWL

EDGES = [[0, 5], [10, 5], [5, 10], [5, 0]]


def test_weighted_manhattan_distance():
    weight = np.zeros((6, 6), dtype=np.int64)
    weight[0][1] = 3
    weight[0][4] = 1  # macro 0 to West
    op = WeightedWL(weight, [2, 2], [2, 2], EDGES)
    # centers (1, 1) and (5, 1); West at (0, 5)
    wl = op(np.array([0, 4, 0, 0], dtype=np.float64))
    assert wl.item() == pytest.approx(3 * 4 + 1 * 5)


def test_both_directions_add_up():
    weight = np.zeros((6, 6), dtype=np.int64)
    weight[0][1] = 2
    weight[1][0] = 1
    op = WeightedWL(weight, [1, 1], [1, 1], EDGES)
    wl = op(torch.tensor([0.0, 3.0, 0.0, 4.0]))
    assert wl.item() == pytest.approx(3 * 7)


def test_no_macros():
    op = WeightedWL(np.zeros((4, 4)), [], [], EDGES)
    assert op(np.zeros(0)).item() == 0.0
