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
# @file   Adjacency.py
# @brief  Macro-to-macro connectivity weights derived from the timing graph
#

import time
import logging
from collections import OrderedDict

from macroplace.Errors import MissingTimingData
from macroplace.Layout import CORE_EDGE_COUNT, core_edge_string, find_nearest_edge


class AdjacencyEngine(object):
    """
    @brief Computes how many timing paths connect each pair of macros.
    Boundary ports take part as four pseudo-macros, one per core edge.
    The result is a sparse map {(driver index, consumer index): weight}
    that is materialized into MacroDB.macro_weight.
    """

    def __init__(self, macro_db, sta, register_adjacency_depth=3):
        """
        @param macro_db session database with the macro list already filled
        @param sta timing graph of the design
        @param register_adjacency_depth number of register stages to look through
        """
        self.macro_db = macro_db
        self.db = macro_db.db
        self.sta = sta
        self.register_adjacency_depth = register_adjacency_depth

        self.vertex_fanins = {}  # vertex --> set of macro indices
        self.adj_map = OrderedDict()  # (from, to) --> weight
        self.timing_mode = True
        self._bfs = None
        self._port_edges = None

    def macro_of_instance(self, inst_name):
        """
        @return macro index of a leaf instance, None if it is not a placeable macro
        """
        handle = self.db.find_instance(inst_name)
        if handle is None:
            return None
        return self.macro_db.macro_inst_map.get(handle)

    def port_edge(self, pin):
        """
        @brief edge pseudo-macro index of a top-level port
        """
        if self._port_edges is None:
            self._port_edges = {}
            locations = {p.name: p for p in self.db.boundary_pins()}
            for port in self.sta.top_ports():
                bpin = locations.get(port.name)
                x = bpin.x if bpin is not None else None
                y = bpin.y if bpin is not None else None
                self._port_edges[port.name] = find_nearest_edge(
                    self.macro_db.core, x, y, port.name
                )
        return self.macro_db.edge_index(self._port_edges[pin.name])

    def add_weight(self, from_idx, to_idx, weight=1):
        if from_idx == to_idx:
            return
        key = (from_idx, to_idx)
        self.adj_map[key] = self.adj_map.get(key, 0) + weight

    def find_adjacencies(self):
        """
        @brief top level entry; falls back to netlist connectivity when the
        timing graph cannot be built
        """
        tt = time.time()
        self.vertex_fanins = {}
        self.adj_map = OrderedDict()
        try:
            self.sta.ensure_levelized()
            self.timing_mode = True
        except MissingTimingData as e:
            logging.warning("%s, using netlist connectivity for macro weights" % (e))
            self.timing_mode = False

        if self.timing_mode:
            self.seed_fanin_bfs()
            self.find_fanins()
            for i in range(self.register_adjacency_depth):
                self.copy_fanins_across_registers()
                self.find_fanins()
            self.find_adj_weights()
        else:
            self.find_adj_weights_netlist()

        self.macro_db.fill_macro_weights(self.adj_map)
        self.report_edge_pin_counts()
        logging.info(
            "found %d macro adjacencies in %s mode, takes %.3f seconds"
            % (
                len(self.adj_map),
                "timing" if self.timing_mode else "netlist",
                time.time() - tt,
            )
        )
        return self.adj_map

    def seed_fanin_bfs(self):
        """
        @brief macro outputs and top-level inputs are the BFS sources
        """
        self._bfs = self.sta.bfs_forward()
        for idx, macro in enumerate(self.macro_db.macros):
            for pin in self.sta.instance_pins(macro.name()):
                if pin.is_any_output() and not self.sta.is_clock(pin):
                    vertex = self.sta.pin_drvr_vertex(pin)
                    self.vertex_fanins.setdefault(vertex, set()).add(idx)
                    self._bfs.enqueue_adjacent_vertices(vertex)
        for pin in self.sta.top_ports():
            if pin.is_any_input() and not self.sta.is_clock(pin):
                vertex = self.sta.pin_drvr_vertex(pin)
                self.vertex_fanins.setdefault(vertex, set()).add(self.port_edge(pin))
                self._bfs.enqueue_adjacent_vertices(vertex)

    def find_fanins(self):
        """
        @brief propagate fanin sets forward in level order
        """
        bfs = self._bfs
        while bfs.has_next():
            vertex = bfs.next()
            fanins = self.vertex_fanins.setdefault(vertex, set())
            for pred in self.sta.predecessors(vertex):
                pred_fanins = self.vertex_fanins.get(pred)
                if pred_fanins:
                    fanins |= pred_fanins
            bfs.enqueue_adjacent_vertices(vertex)

    def copy_fanins_across_registers(self):
        """
        @brief make register outputs inherit the fanins of their data inputs,
        then queue their fanouts for another propagation pass
        """
        self._bfs = self.sta.bfs_forward()
        for inst_name in self.sta.leaf_instances():
            if self.macro_of_instance(inst_name) is not None:
                continue
            cell = self.sta.liberty_cell(inst_name)
            if cell is None or not cell.has_sequentials:
                continue
            for seq in cell.sequentials:
                out_pin = self.sta.find_seq_out_pin(inst_name, seq.output)
                if out_pin is None:
                    continue
                out_vertex = self.sta.pin_drvr_vertex(out_pin)
                for data_port in seq.data:
                    data_pin = self.sta.find_pin(inst_name, data_port)
                    if data_pin is None:
                        continue
                    fanins = self.vertex_fanins.get(self.sta.pin_load_vertex(data_pin))
                    if fanins:
                        self.vertex_fanins.setdefault(out_vertex, set()).update(fanins)
                        self._bfs.enqueue_adjacent_vertices(out_vertex)

    def find_adj_weights(self):
        for idx, macro in enumerate(self.macro_db.macros):
            for pin in self.sta.instance_pins(macro.name()):
                if pin.is_any_input() and not self.sta.is_clock(pin):
                    fanins = self.vertex_fanins.get(self.sta.pin_load_vertex(pin), ())
                    for fanin in sorted(fanins):
                        self.add_weight(fanin, idx)
        for pin in self.sta.top_ports():
            if pin.is_any_output() and not self.sta.is_clock(pin):
                edge_idx = self.port_edge(pin)
                fanins = self.vertex_fanins.get(self.sta.pin_load_vertex(pin), ())
                for fanin in sorted(fanins):
                    self.add_weight(fanin, edge_idx)

    def find_adj_weights_netlist(self):
        """
        @brief direct driver/load pairs per net, one unit per load pin
        """
        for net, drivers, loads in self.sta.nets():
            sources = []
            for pin in drivers:
                if self.sta.is_clock(pin):
                    continue
                if pin.is_top_port:
                    sources.append(self.port_edge(pin))
                else:
                    idx = self.macro_of_instance(pin.instance)
                    if idx is not None:
                        sources.append(idx)
            if not sources:
                continue
            for pin in loads:
                if self.sta.is_clock(pin):
                    continue
                if pin.is_top_port:
                    sink = self.port_edge(pin)
                else:
                    sink = self.macro_of_instance(pin.instance)
                    if sink is None:
                        continue
                for source in sources:
                    if not (
                        self.macro_db.macro_index_is_edge(source)
                        and self.macro_db.macro_index_is_edge(sink)
                    ):
                        self.add_weight(source, sink)

    def edge_pin_counts(self):
        counts = [0] * CORE_EDGE_COUNT
        for pin in self.sta.top_ports():
            counts[self.port_edge(pin) - self.macro_db.num_macros] += 1
        return counts

    def report_edge_pin_counts(self):
        for edge, count in enumerate(self.edge_pin_counts()):
            logging.info("%s pins: %d" % (core_edge_string(edge), count))
