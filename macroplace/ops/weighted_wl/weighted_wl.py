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
# @file   weighted_wl.py
# @brief  Connectivity-weighted wirelength between macro centers
#

import torch
from torch import nn


class WeightedWL(nn.Module):
    """
    @brief sum over macro pairs i > j of (w[i][j] + w[j][i]) * |ci - cj|_1,
    where the last four nodes are edge pseudo-macros at fixed positions
    """

    def __init__(self, macro_weight, macro_size_x, macro_size_y, edge_pos):
        """
        @param macro_weight (N + 4) x (N + 4) weight matrix
        @param macro_size_x macro widths, length N
        @param macro_size_y macro heights, length N
        @param edge_pos (4, 2) positions of the edge pseudo-macros
        """
        super(WeightedWL, self).__init__()
        weight = torch.as_tensor(macro_weight, dtype=torch.float64)
        self.num_macros = weight.shape[0] - 4
        assert self.num_macros >= 0
        # only the upper triangle is summed, so fold both directions into it
        self.weight = torch.triu(weight + weight.t(), diagonal=1)
        self.macro_size_x = torch.as_tensor(macro_size_x, dtype=torch.float64)
        self.macro_size_y = torch.as_tensor(macro_size_y, dtype=torch.float64)
        edge_pos = torch.as_tensor(edge_pos, dtype=torch.float64)
        self.edge_pos_x = edge_pos[:, 0]
        self.edge_pos_y = edge_pos[:, 1]

    def forward(self, pos):
        """
        @param pos lower-left corners, array of x locations and then y locations
        """
        pos = torch.as_tensor(pos, dtype=torch.float64)
        n = self.num_macros
        # center positions of macros
        x = pos[:n] + self.macro_size_x / 2
        y = pos[n : 2 * n] + self.macro_size_y / 2

        # add the edge pseudo-macros
        x = torch.cat((x, self.edge_pos_x))
        y = torch.cat((y, self.edge_pos_y))

        # delta xij = |xi - xj|
        delta_x = torch.cdist(x.view(-1, 1), x.view(-1, 1), p=1.0)
        # delta yij = |yi - yj|
        delta_y = torch.cdist(y.view(-1, 1), y.view(-1, 1), p=1.0)

        return torch.sum(self.weight * (delta_x + delta_y))
