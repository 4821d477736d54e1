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
# @file   MacroDB.py
# @brief  Macro placement database of one placement session
#

import time
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from macroplace.Errors import ConfigError, InternalInconsistency
from macroplace.Layout import (
    CORE_EDGE_COUNT,
    Layout,
    core_edge_from_index,
    core_edge_string,
)
from macroplace.Params import check_fence_region, check_spacing


class Macro(object):
    """
    @brief one placeable block; geometry is fixed, only lx/ly change during placement
    """

    def __init__(
        self, lx, ly, w, h, halo_x, halo_y, channel_x, channel_y, inst, name, master
    ):
        self.lx = float(lx)
        self.ly = float(ly)
        self.w = float(w)
        self.h = float(h)
        self.halo_x = float(halo_x)
        self.halo_y = float(halo_y)
        self.channel_x = float(channel_x)
        self.channel_y = float(channel_y)
        self.inst = inst  # instance handle in the layout database
        self._name = name
        self._type = master

    def name(self):
        return self._name

    def type(self):
        return self._type

    @property
    def pad_x(self):
        return self.halo_x + self.channel_x

    @property
    def pad_y(self):
        return self.halo_y + self.channel_y

    @property
    def padded_w(self):
        return self.w + 2 * self.pad_x

    @property
    def padded_h(self):
        return self.h + 2 * self.pad_y

    def center(self):
        return self.lx + self.w / 2, self.ly + self.h / 2

    def __repr__(self):
        return "Macro(%s, %s, (%g, %g), %gx%g)" % (
            self._name,
            self._type,
            self.lx,
            self.ly,
            self.w,
            self.h,
        )


@dataclass(frozen=True)
class MacroLocalInfo:
    """
    @brief per-macro halo/channel overrides; None falls back to the global value
    """

    halo_x: Optional[float] = None
    halo_y: Optional[float] = None
    channel_x: Optional[float] = None
    channel_y: Optional[float] = None

    @classmethod
    def from_config(cls, entry):
        return cls(
            halo_x=entry.get("macro_halo_x"),
            halo_y=entry.get("macro_halo_y"),
            channel_x=entry.get("macro_channel_x"),
            channel_y=entry.get("macro_channel_y"),
        )


class MacroDB(object):
    """
    @brief session state: macro list, instance/index lookups, local overrides and the weight matrix
    """

    def __init__(self, db):
        self.db = db
        self.macros = []  # macro storage
        self.macro_inst_map = {}  # instance handle --> macro index
        self.macro_name2id_map = {}
        self.macro_local_map = {}  # macro name --> MacroLocalInfo
        self.macro_weight = None  # (N + 4) x (N + 4) adjacency weights
        self.obstacles = []  # padded rectangles of fixed blocks

        self.layout = db.core.copy()
        self.core = db.core.copy()
        self.halo_x = 0.0
        self.halo_y = 0.0
        self.channel_x = 0.0
        self.channel_y = 0.0

    def set_spacing(self, halo_x, halo_y, channel_x, channel_y, source=None):
        self.halo_x = check_spacing(halo_x, "macro_halo_x", source)
        self.halo_y = check_spacing(halo_y, "macro_halo_y", source)
        self.channel_x = check_spacing(channel_x, "macro_channel_x", source)
        self.channel_y = check_spacing(channel_y, "macro_channel_y", source)

    def set_fence_region(self, fence, source=None):
        """
        @brief top-level layout is the fence clipped to the core, or the core without a fence
        """
        fence = check_fence_region(fence, source)
        if fence is None:
            self.layout = self.core.copy()
            return
        layout = Layout(*fence).intersect(self.core)
        if not layout.is_valid() or layout.area <= 0:
            raise ConfigError(
                "fence region %s does not overlap core %s" % (Layout(*fence), self.core),
                source,
            )
        self.layout = layout

    def set_local_config(self, local_config, source=None):
        self.macro_local_map = {}
        for name, entry in local_config.items():
            for key, value in entry.items():
                check_spacing(value, "%s of %s" % (key, name), source)
            self.macro_local_map[name] = MacroLocalInfo.from_config(entry)

    def fill_macro_stor(self):
        """
        @brief build one Macro per placeable block instance
        """
        tt = time.time()
        self.macros = []
        self.macro_inst_map = {}
        self.macro_name2id_map = {}

        for handle in self.db.macro_instances():
            inst = self.db.instance(handle)
            halo_x, halo_y = self.halo_x, self.halo_y
            channel_x, channel_y = self.channel_x, self.channel_y
            info = self.macro_local_map.get(inst.name)
            if info is not None:
                if info.halo_x is not None:
                    halo_x = info.halo_x
                if info.halo_y is not None:
                    halo_y = info.halo_y
                if info.channel_x is not None:
                    channel_x = info.channel_x
                if info.channel_y is not None:
                    channel_y = info.channel_y
            macro = Macro(
                inst.x,
                inst.y,
                inst.width,
                inst.height,
                halo_x,
                halo_y,
                channel_x,
                channel_y,
                handle,
                inst.name,
                inst.master,
            )
            self.macro_inst_map[handle] = len(self.macros)
            self.macro_name2id_map[inst.name] = len(self.macros)
            self.macros.append(macro)

        for name in self.macro_local_map:
            if name not in self.macro_name2id_map:
                logging.warning("local configuration of %s matches no macro" % (name))

        self.obstacles = []
        for handle in self.db.fixed_block_instances():
            inst = self.db.instance(handle)
            self.obstacles.append(
                (
                    inst.x - self.halo_x,
                    inst.y - self.halo_y,
                    inst.x + inst.width + self.halo_x,
                    inst.y + inst.height + self.halo_y,
                )
            )

        self.macro_weight = np.zeros(
            (self.num_weight_nodes, self.num_weight_nodes), dtype=np.int64
        )
        logging.info(
            "found %d macros, %d fixed blocks, layout %s, takes %.3f seconds"
            % (len(self.macros), len(self.obstacles), self.layout, time.time() - tt)
        )

    @property
    def num_macros(self):
        return len(self.macros)

    @property
    def num_weight_nodes(self):
        return len(self.macros) + CORE_EDGE_COUNT

    def edge_index(self, edge):
        """
        @brief weight-matrix index of the pseudo-macro of a core edge
        """
        return len(self.macros) + int(edge)

    def macro_index_is_edge(self, index):
        return index >= len(self.macros)

    def macro_index(self, handle):
        return self.macro_inst_map[handle]

    def fanin_name(self, index):
        if self.macro_index_is_edge(index):
            return core_edge_string(core_edge_from_index(index - len(self.macros)))
        return self.macros[index].name()

    def check_index(self, index):
        if index < 0 or index >= self.num_weight_nodes:
            raise InternalInconsistency(
                "macro index %d outside [0, %d]" % (index, self.num_weight_nodes - 1)
            )

    def weight(self, i, j):
        self.check_index(i)
        self.check_index(j)
        return int(self.macro_weight[i][j])

    def fill_macro_weights(self, adj_map):
        """
        @brief materialize the sparse adjacency map into the dense matrix;
        pairs between two edge pseudo-macros carry no information and are dropped
        """
        self.macro_weight = np.zeros(
            (self.num_weight_nodes, self.num_weight_nodes), dtype=np.int64
        )
        for (from_idx, to_idx), weight in adj_map.items():
            self.check_index(from_idx)
            self.check_index(to_idx)
            if self.macro_index_is_edge(from_idx) and self.macro_index_is_edge(to_idx):
                continue
            self.macro_weight[from_idx][to_idx] = weight
            logging.debug(
                "%s -> %s %d"
                % (self.fanin_name(from_idx), self.fanin_name(to_idx), weight)
            )

    def edge_positions(self):
        """
        @brief (4, 2) array of pseudo-macro positions, in West, East, North, South order
        """
        return np.array(
            [self.layout.edge_point(e) for e in range(CORE_EDGE_COUNT)], dtype=np.float64
        )

    def macro_locations(self):
        """
        @brief copy of the lower-left corners as two arrays
        """
        lx = np.array([m.lx for m in self.macros], dtype=np.float64)
        ly = np.array([m.ly for m in self.macros], dtype=np.float64)
        return lx, ly

    def macro_sizes(self):
        w = np.array([m.w for m in self.macros], dtype=np.float64)
        h = np.array([m.h for m in self.macros], dtype=np.float64)
        return w, h

    def apply(self, lx, ly):
        """
        @brief assign a placement solution to the macro records
        """
        assert len(lx) == len(self.macros) and len(ly) == len(self.macros)
        for macro, x, y in zip(self.macros, lx, ly):
            macro.lx = float(x)
            macro.ly = float(y)

    def print_macro(self, index):
        macro = self.macros[index]
        logging.debug(
            "macro %s(%d) %s, size (%g, %g), pos (%g, %g), halo (%g, %g), channel (%g, %g)"
            % (
                macro.name(),
                index,
                macro.type(),
                macro.w,
                macro.h,
                macro.lx,
                macro.ly,
                macro.halo_x,
                macro.halo_y,
                macro.channel_x,
                macro.channel_y,
            )
        )
