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
# @file   TimingGraph.py
# @brief  Netlist, liberty view and levelized timing graph consumed by the adjacency engine
#

import heapq
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from macroplace.Errors import MissingTimingData


@dataclass
class LibertyPort:
    name: str
    direction: str  # input, output, inout or internal
    is_clock: bool = False
    function: Optional[str] = None  # output function, e.g. "IQ" or "!IQ"


@dataclass
class Sequential:
    clock: str
    data: List[str]
    output: str  # may be an internal state port such as IQ


@dataclass
class LibertyCell:
    name: str
    ports: Dict[str, LibertyPort] = field(default_factory=dict)
    arcs: List[Tuple[str, str]] = field(default_factory=list)  # combinational
    sequentials: List[Sequential] = field(default_factory=list)
    is_macro: bool = False

    @property
    def has_sequentials(self):
        return len(self.sequentials) > 0


@dataclass
class NetworkInstance:
    name: str
    cell: str
    connections: Dict[str, str] = field(default_factory=dict)  # port -> net
    # pin directions from the physical view, used when no liberty cell exists
    directions: Dict[str, str] = field(default_factory=dict)


@dataclass
class TopPort:
    name: str
    direction: str
    net: Optional[str] = None
    is_clock: bool = False


@dataclass
class Pin:
    name: str
    instance: Optional[str]  # None for top-level ports
    port: str
    direction: str
    net: Optional[str]
    vertex: int

    @property
    def is_top_port(self):
        return self.instance is None

    def is_any_input(self):
        return self.direction in ("input", "inout")

    def is_any_output(self):
        return self.direction in ("output", "inout")


@dataclass
class Edge:
    src: int
    dst: int
    kind: str  # wire, combinational or register
    is_loop: bool = False  # disabled to break a combinational loop


class TimingGraph(object):
    """
    @brief one vertex per pin; wire edges from net drivers to loads,
    cell arcs from liberty combinational arcs and register clock->output arcs
    """

    def __init__(self, instances, ports, library=None):
        """
        @param instances list of NetworkInstance
        @param ports list of TopPort
        @param library dict of cell name to LibertyCell
        """
        self.library = library or {}
        self.instances = OrderedDict((inst.name, inst) for inst in instances)
        self.ports = OrderedDict((port.name, port) for port in ports)

        self.pins = []
        self.pin_map = {}
        self.inst_pins = OrderedDict()
        self.net_drivers = OrderedDict()
        self.net_loads = OrderedDict()
        self.edges = []
        self.in_edges = []
        self.out_edges = []
        self.levels = None
        self.clock_nets = set()

        self._build_pins()
        self._build_edges()

    def _pin_direction(self, inst, port):
        cell = self.library.get(inst.cell)
        if cell is not None and port in cell.ports:
            return cell.ports[port].direction
        if port in inst.directions:
            return inst.directions[port]
        logging.warning(
            "no direction for pin %s/%s, assuming input" % (inst.name, port)
        )
        return "input"

    def _add_pin(self, name, instance, port, direction, net):
        pin = Pin(name, instance, port, direction, net, len(self.pins))
        self.pins.append(pin)
        self.pin_map[name] = pin
        self.in_edges.append([])
        self.out_edges.append([])
        if net is not None:
            drivers = self.net_drivers.setdefault(net, [])
            loads = self.net_loads.setdefault(net, [])
            # a top-level input drives the net it is on
            if pin.is_top_port:
                if direction in ("input", "inout"):
                    drivers.append(pin)
                if direction in ("output", "inout"):
                    loads.append(pin)
            else:
                if pin.is_any_output():
                    drivers.append(pin)
                if pin.is_any_input():
                    loads.append(pin)
        return pin

    def _build_pins(self):
        for inst in self.instances.values():
            pins = []
            for port, net in inst.connections.items():
                direction = self._pin_direction(inst, port)
                pins.append(
                    self._add_pin("%s/%s" % (inst.name, port), inst.name, port, direction, net)
                )
            self.inst_pins[inst.name] = pins
        for port in self.ports.values():
            self._add_pin(port.name, None, port.name, port.direction, port.net)
            if port.is_clock and port.net is not None:
                self.clock_nets.add(port.net)

    def _add_edge(self, src, dst, kind):
        edge = Edge(src.vertex, dst.vertex, kind)
        self.edges.append(edge)
        self.out_edges[src.vertex].append(edge)
        self.in_edges[dst.vertex].append(edge)

    def _build_edges(self):
        for net, drivers in self.net_drivers.items():
            for driver in drivers:
                for load in self.net_loads.get(net, []):
                    if load is not driver:
                        self._add_edge(driver, load, "wire")
        for inst in self.instances.values():
            cell = self.library.get(inst.cell)
            if cell is None:
                continue
            for from_port, to_port in cell.arcs:
                src = self.find_pin(inst.name, from_port)
                dst = self.find_pin(inst.name, to_port)
                if src is not None and dst is not None:
                    self._add_edge(src, dst, "combinational")
            for seq in cell.sequentials:
                clk = self.find_pin(inst.name, seq.clock)
                out = self.find_seq_out_pin(inst.name, seq.output)
                if clk is not None and out is not None:
                    self._add_edge(clk, out, "register")

    ##########################################################################
    # network queries

    def find_pin(self, inst_name, port):
        return self.pin_map.get("%s/%s" % (inst_name, port))

    def leaf_instances(self):
        return list(self.instances.keys())

    def instance_pins(self, inst_name):
        return self.inst_pins.get(inst_name, [])

    def top_ports(self):
        return [self.pin_map[name] for name in self.ports]

    def liberty_cell(self, inst_name):
        return self.library.get(self.instances[inst_name].cell)

    def is_missing_liberty(self):
        """
        @brief true if any leaf instance lacks a liberty cell
        """
        for inst in self.instances.values():
            if inst.cell not in self.library:
                return True
        return False

    def missing_liberty_cells(self):
        return sorted(
            set(inst.cell for inst in self.instances.values() if inst.cell not in self.library)
        )

    def is_clock(self, pin):
        if pin.is_top_port:
            if self.ports[pin.name].is_clock:
                return True
        else:
            cell = self.liberty_cell(pin.instance)
            if cell is not None:
                port = cell.ports.get(pin.port)
                if port is not None and port.is_clock:
                    return True
        return pin.net in self.clock_nets

    def find_seq_out_pin(self, inst_name, out_port):
        """
        @brief pin of a sequential output; internal state ports resolve to the
        output port whose function is that state or its inverse
        """
        cell = self.liberty_cell(inst_name)
        if cell is None:
            return None
        port = cell.ports.get(out_port)
        if port is not None and port.direction != "internal":
            return self.find_pin(inst_name, out_port)
        for name, lib_port in cell.ports.items():
            if lib_port.direction in ("output", "inout") and lib_port.function:
                if lib_port.function.strip().lstrip("!").strip() == out_port:
                    pin = self.find_pin(inst_name, name)
                    if pin is not None:
                        return pin
        return None

    def nets(self):
        """
        @brief yield (net, drivers, loads) in netlist order
        """
        for net, drivers in self.net_drivers.items():
            yield net, drivers, self.net_loads.get(net, [])

    ##########################################################################
    # graph queries

    @property
    def num_vertices(self):
        return len(self.pins)

    def pin_drvr_vertex(self, pin):
        return pin.vertex

    def pin_load_vertex(self, pin):
        return pin.vertex

    def vertex_pin(self, vertex):
        return self.pins[vertex]

    @staticmethod
    def searchable(edge):
        """
        @brief search predicate: never through register clock->output arcs or broken loops
        """
        return edge.kind != "register" and not edge.is_loop

    def predecessors(self, vertex):
        return [e.src for e in self.in_edges[vertex] if self.searchable(e)]

    def successors(self, vertex):
        return [e.dst for e in self.out_edges[vertex] if self.searchable(e)]

    def ensure_levelized(self):
        if self.is_missing_liberty():
            raise MissingTimingData(
                "no liberty cells for %s" % (", ".join(self.missing_liberty_cells()))
            )
        if self.levels is None:
            self._break_loops()
            self._levelize()
        return self.levels

    def _break_loops(self):
        white, gray, black = 0, 1, 2
        color = [white] * self.num_vertices
        num_loops = 0
        for root in range(self.num_vertices):
            if color[root] != white:
                continue
            color[root] = gray
            stack = [(root, iter(self.out_edges[root]))]
            while stack:
                vertex, edges = stack[-1]
                advanced = False
                for edge in edges:
                    if not self.searchable(edge):
                        continue
                    if color[edge.dst] == gray:
                        edge.is_loop = True
                        num_loops += 1
                        logging.debug(
                            "disable loop edge %s -> %s"
                            % (self.pins[edge.src].name, self.pins[edge.dst].name)
                        )
                    elif color[edge.dst] == white:
                        color[edge.dst] = gray
                        stack.append((edge.dst, iter(self.out_edges[edge.dst])))
                        advanced = True
                        break
                if not advanced:
                    color[vertex] = black
                    stack.pop()
        if num_loops:
            logging.warning("disabled %d combinational loop edges" % (num_loops))

    def _levelize(self):
        levels = [0] * self.num_vertices
        in_degree = [len(self.predecessors(v)) for v in range(self.num_vertices)]
        queue = [v for v in range(self.num_vertices) if in_degree[v] == 0]
        heapq.heapify(queue)
        visited = 0
        while queue:
            vertex = heapq.heappop(queue)
            visited += 1
            for succ in self.successors(vertex):
                levels[succ] = max(levels[succ], levels[vertex] + 1)
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    heapq.heappush(queue, succ)
        if visited != self.num_vertices:
            raise MissingTimingData("timing graph cannot be levelized")
        self.levels = levels
        logging.debug(
            "levelized %d vertices, max level %d"
            % (self.num_vertices, max(levels) if levels else 0)
        )

    def bfs_forward(self):
        return BfsFwdIterator(self)


class BfsFwdIterator(object):
    """
    @brief forward BFS that hands out queued vertices by increasing level,
    so every predecessor of a vertex is processed before the vertex itself
    """

    def __init__(self, graph):
        self.graph = graph
        self.levels = graph.ensure_levelized()
        self._heap = []
        self._queued = set()

    def enqueue(self, vertex):
        if vertex not in self._queued:
            self._queued.add(vertex)
            heapq.heappush(self._heap, (self.levels[vertex], vertex))

    def enqueue_adjacent_vertices(self, vertex):
        for succ in self.graph.successors(vertex):
            self.enqueue(succ)

    def has_next(self):
        return len(self._heap) > 0

    def next(self):
        _, vertex = heapq.heappop(self._heap)
        self._queued.discard(vertex)
        return vertex

    def __iter__(self):
        while self.has_next():
            yield self.next()
