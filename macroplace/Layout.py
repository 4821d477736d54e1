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
# @file   Layout.py
# @brief  Layout rectangles and chip-boundary edge classification
#

import enum
import logging


@enum.unique
class CoreEdge(enum.IntEnum):
    """
    @brief side of the core; the value is the stable index of the edge pseudo-macro
    """

    WEST = 0
    EAST = 1
    NORTH = 2
    SOUTH = 3


CORE_EDGE_COUNT = 4

_core_edge_names = {
    CoreEdge.WEST: "West",
    CoreEdge.EAST: "East",
    CoreEdge.NORTH: "North",
    CoreEdge.SOUTH: "South",
}


def core_edge_string(edge):
    return _core_edge_names[CoreEdge(edge)]


def core_edge_from_index(edge_index):
    return CoreEdge(edge_index)


def core_edge_index(edge):
    return int(edge)


class Layout(object):
    """
    @brief axis-aligned rectangle (lx, ly, ux, uy), copied by value
    """

    def __init__(self, lx=0.0, ly=0.0, ux=0.0, uy=0.0):
        self.lx = float(lx)
        self.ly = float(ly)
        self.ux = float(ux)
        self.uy = float(uy)

    @classmethod
    def from_partition(cls, orig, part):
        """
        @brief child layout of a parent layout for the sub-rectangle assigned to a partition
        @param orig parent layout
        @param part partition whose region lies inside orig
        """
        region = part.region
        return cls(
            max(orig.lx, region.lx),
            max(orig.ly, region.ly),
            min(orig.ux, region.ux),
            min(orig.uy, region.uy),
        )

    def copy(self):
        return Layout(self.lx, self.ly, self.ux, self.uy)

    @property
    def width(self):
        return self.ux - self.lx

    @property
    def height(self):
        return self.uy - self.ly

    @property
    def area(self):
        return self.width * self.height

    def center(self):
        return (self.lx + self.ux) / 2, (self.ly + self.uy) / 2

    def is_valid(self):
        return self.ux >= self.lx and self.uy >= self.ly

    def intersect(self, other):
        return Layout(
            max(self.lx, other.lx),
            max(self.ly, other.ly),
            min(self.ux, other.ux),
            min(self.uy, other.uy),
        )

    def contains(self, lx, ly, ux, uy, eps=1e-6):
        return (
            lx >= self.lx - eps
            and ly >= self.ly - eps
            and ux <= self.ux + eps
            and uy <= self.uy + eps
        )

    def edge_point(self, edge):
        """
        @brief fixed position of an edge pseudo-macro, the midpoint of that side
        """
        edge = CoreEdge(edge)
        cx, cy = self.center()
        if edge == CoreEdge.WEST:
            return self.lx, cy
        elif edge == CoreEdge.EAST:
            return self.ux, cy
        elif edge == CoreEdge.NORTH:
            return cx, self.uy
        return cx, self.ly

    def to_list(self):
        return [self.lx, self.ly, self.ux, self.uy]

    def __eq__(self, other):
        if isinstance(other, Layout):
            return self.to_list() == other.to_list()
        return False

    def __str__(self):
        return "(%g, %g) - (%g, %g)" % (self.lx, self.ly, self.ux, self.uy)

    def __repr__(self):
        return "Layout%s" % (self.__str__())


def find_nearest_edge(layout, x, y, pin_name=None):
    """
    @brief classify a boundary pin to the closest side of the layout
    @param layout core or fence rectangle
    @param x pin location x, None if the pin is unplaced
    @param y pin location y, None if the pin is unplaced
    @return CoreEdge, ties resolved West > East > North > South
    """
    if x is None or y is None:
        logging.warning("pin %s is not placed, using West" % (pin_name))
        return CoreEdge.WEST

    dst_west = abs(x - layout.lx)
    dst_east = abs(layout.ux - x)
    dst_north = abs(layout.uy - y)
    dst_south = abs(y - layout.ly)
    min_dst = min(dst_west, dst_east, dst_north, dst_south)
    if min_dst == dst_west:
        return CoreEdge.WEST
    elif min_dst == dst_east:
        return CoreEdge.EAST
    elif min_dst == dst_north:
        return CoreEdge.NORTH
    return CoreEdge.SOUTH
