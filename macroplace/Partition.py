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
# @file   Partition.py
# @brief  Recursive bisection of the layout and greedy packing of the leaves
#

import logging

import numpy as np

from macroplace.Errors import PartitionInfeasible
from macroplace.Layout import Layout

EPS = 1e-6


def _overlap(a, b):
    """
    @brief strict overlap of two (lx, ly, ux, uy) boxes, touching is allowed
    """
    return (
        a[0] < b[2] - EPS and b[0] < a[2] - EPS and a[1] < b[3] - EPS and b[1] < a[3] - EPS
    )


def _weighted_median(values, weights):
    order = np.argsort(values, kind="stable")
    cum = np.cumsum(weights[order])
    k = int(np.searchsorted(cum, cum[-1] / 2.0))
    return float(values[order][min(k, len(order) - 1)])


class Partition(object):
    """
    @brief node of the bisection tree; owns its children.
    Leaves hold the final lower-left corners of their macros after finalize().
    """

    def __init__(self, region, macros, depth=0, parent=None):
        """
        @param region Layout assigned to this partition
        @param macros macro indices inside the partition
        @param depth distance from the root
        @param parent enclosing partition, None for the root
        """
        self.region = region.copy()
        self.macros = list(macros)
        self.depth = depth
        self.parent = parent
        self.children = []
        self.cut_vertical = None
        self.locations = {}  # macro index --> (lx, ly), leaves only
        self.net_table = None

    def is_leaf(self):
        return len(self.children) == 0

    def leaves(self):
        """
        @brief leaves in depth-first order, lower/left child first
        """
        result = []
        stack = [self]
        while stack:
            part = stack.pop()
            if part.is_leaf():
                result.append(part)
            else:
                stack.extend(reversed(part.children))
        return result

    def merge(self):
        """
        @brief drop the subtree below this partition so it is packed as one leaf
        """
        self.children = []
        self.cut_vertical = None
        self.locations = {}

    def find_leaf(self, macro):
        part = self
        while not part.is_leaf():
            for child in part.children:
                if macro in child.macros:
                    part = child
                    break
            else:
                return None
        return part if macro in part.macros else None

    def assigned_region(self, macro):
        leaf = self.find_leaf(macro)
        return leaf.region.copy() if leaf is not None else None

    def macro_location(self, macro):
        leaf = self.find_leaf(macro)
        if leaf is None:
            return None
        return leaf.locations.get(macro)

    def _cut_position(self, macro_db, vertical, left, right):
        """
        @brief cut coordinate proportional to the area of each side,
        clamped so each side is wide enough for its widest macro
        @return cut coordinate or None if the two sides cannot both fit
        """
        macros = macro_db.macros
        area_left = sum(macros[i].padded_w * macros[i].padded_h for i in left)
        area_right = sum(macros[i].padded_w * macros[i].padded_h for i in right)
        if vertical:
            lo, hi = self.region.lx, self.region.ux
            need_left = max(macros[i].padded_w for i in left)
            need_right = max(macros[i].padded_w for i in right)
        else:
            lo, hi = self.region.ly, self.region.uy
            need_left = max(macros[i].padded_h for i in left)
            need_right = max(macros[i].padded_h for i in right)
        if lo + need_left > hi - need_right + EPS:
            return None
        cut = lo + (hi - lo) * area_left / (area_left + area_right)
        return min(max(cut, lo + need_left), hi - need_right)

    def subdivide(self, macro_db, vertical, cut_offset=0):
        """
        @brief cut into two children
        @param vertical cut with a vertical line (left/right halves) if true
        @param cut_offset shift of the area-balanced split index
        @return the two children
        """
        assert self.is_leaf() and len(self.macros) >= 2
        macros = macro_db.macros

        # fall back to the other direction if the preferred cut cannot fit
        for direction in (vertical, not vertical):
            axis = 0 if direction else 1
            ordered = sorted(self.macros, key=lambda i: (macros[i].center()[axis], i))
            areas = np.array(
                [macros[i].padded_w * macros[i].padded_h for i in ordered],
                dtype=np.float64,
            )
            prefix = np.cumsum(areas)[:-1]
            # area-balanced split, first index wins a tie
            split = int(np.argmin(np.abs(prefix - areas.sum() / 2.0))) + 1
            split = min(max(split + int(cut_offset), 1), len(ordered) - 1)
            left, right = ordered[:split], ordered[split:]
            cut = self._cut_position(macro_db, direction, left, right)
            if cut is not None:
                break
        else:
            name = max(
                (macros[i] for i in self.macros), key=lambda m: m.padded_w * m.padded_h
            ).name()
            raise PartitionInfeasible(
                self.region, name, "no cut fits %d macros" % (len(self.macros))
            )

        r = self.region
        if direction:
            regions = (Layout(r.lx, r.ly, cut, r.uy), Layout(cut, r.ly, r.ux, r.uy))
        else:
            regions = (Layout(r.lx, r.ly, r.ux, cut), Layout(r.lx, cut, r.ux, r.uy))
        self.cut_vertical = direction
        self.children = [
            Partition(regions[0], left, self.depth + 1, self),
            Partition(regions[1], right, self.depth + 1, self),
        ]
        logging.debug(
            "cut %s at %g: %d | %d macros"
            % (str(r), cut, len(left), len(right))
        )
        return self.children

    def finalize(self, macro_db, placed, estimates, order_key="connectivity"):
        """
        @brief pack the macros of a leaf.
        The greedy pass puts each macro at its cheapest legal candidate. If a macro
        is left without one, the leaf is packed again bottom-left in decreasing
        height order and the connection cost only breaks ties.
        @param placed macro index --> (lx, ly) of macros already packed, updated in place
        @param estimates macro index --> estimated center of macros not yet packed
        @param order_key connectivity or area
        """
        assert self.is_leaf()
        macros = macro_db.macros
        region = Layout.from_partition(macro_db.layout, self)
        num_macros = macro_db.num_macros
        wsym = macro_db.macro_weight + macro_db.macro_weight.T
        np.fill_diagonal(wsym, 0)

        total = sum(macros[i].padded_w * macros[i].padded_h for i in self.macros)
        if total > region.area + EPS:
            raise PartitionInfeasible(
                region,
                macros[self.macros[0]].name(),
                "padded macro area %g exceeds region area %g" % (total, region.area),
            )

        if order_key == "area":
            ordered = sorted(
                self.macros, key=lambda i: (-macros[i].padded_w * macros[i].padded_h, i)
            )
        else:
            ordered = sorted(self.macros, key=lambda i: (-int(wsym[i].sum()), i))

        # known centers: placed macros, estimates of the rest, then the edges
        pos = np.zeros((num_macros + 4, 2), dtype=np.float64)
        for i in range(num_macros):
            if i in placed:
                lx, ly = placed[i]
                pos[i] = (lx + macros[i].w / 2, ly + macros[i].h / 2)
            else:
                pos[i] = estimates[i]
        pos[num_macros:] = macro_db.edge_positions()

        blocked = [
            o
            for o in macro_db.obstacles
            if _overlap(o, (region.lx, region.ly, region.ux, region.uy))
        ]
        try:
            boxes = self._pack(macro_db, region, ordered, wsym, pos, blocked)
        except PartitionInfeasible as e:
            logging.debug("%s, packing bottom-left" % (e))
            ordered = sorted(
                self.macros, key=lambda i: (-macros[i].padded_h, -macros[i].padded_w, i)
            )
            boxes = self._pack(
                macro_db, region, ordered, wsym, pos, blocked, bottom_left=True
            )

        self.locations = {}
        for idx, box in boxes.items():
            lx, ly = box[0] + macros[idx].pad_x, box[1] + macros[idx].pad_y
            self.locations[idx] = (lx, ly)
            placed[idx] = (lx, ly)
        return self.locations

    def _pack(self, macro_db, region, ordered, wsym, pos, blocked, bottom_left=False):
        """
        @return macro index --> padded box (lx, ly, ux, uy), in packing order
        """
        macros = macro_db.macros
        pos = pos.copy()
        blocked = list(blocked)
        boxes = {}
        for idx in ordered:
            macro = macros[idx]
            box = self._best_position(
                region, macro, idx, wsym[idx], pos, blocked, bottom_left
            )
            if box is None:
                raise PartitionInfeasible(region, macro.name(), "no legal position")
            blocked.append(box)
            boxes[idx] = box
            pos[idx] = (box[0] + macro.pad_x + macro.w / 2, box[1] + macro.pad_y + macro.h / 2)
        return boxes

    def _best_position(self, region, macro, idx, weights, pos, blocked, bottom_left=False):
        """
        @brief candidates are the lower-left corners on the grid spanned by the
        region boundary, the weighted-median target and the sides of blocked boxes
        @param bottom_left rank by lower y then lower x instead of by cost first
        @return padded box (lx, ly, ux, uy), None if nothing fits
        """
        pw, ph = macro.padded_w, macro.padded_h
        if pw > region.width + EPS or ph > region.height + EPS:
            return None

        if bottom_left:
            xs = set([region.lx]) | set(b[2] for b in blocked)
            ys = set([region.ly]) | set(b[3] for b in blocked)
        else:
            # target is the weighted median of connected centers
            mask = weights > 0
            mask[idx] = False
            if mask.any():
                tx = _weighted_median(pos[mask, 0], weights[mask].astype(np.float64))
                ty = _weighted_median(pos[mask, 1], weights[mask].astype(np.float64))
            else:
                tx, ty = region.center()
            tpx = min(max(tx - pw / 2, region.lx), region.ux - pw)
            tpy = min(max(ty - ph / 2, region.ly), region.uy - ph)
            xs = set([region.lx, region.ux - pw, tpx])
            ys = set([region.ly, region.uy - ph, tpy])
            for b in blocked:
                xs.update((b[0], b[2], b[0] - pw, b[2] - pw))
                ys.update((b[1], b[3], b[1] - ph, b[3] - ph))

        px, py = np.meshgrid(np.array(sorted(xs)), np.array(sorted(ys)))
        px = px.ravel()
        py = py.ravel()
        legal = (
            (px >= region.lx - EPS)
            & (py >= region.ly - EPS)
            & (px + pw <= region.ux + EPS)
            & (py + ph <= region.uy + EPS)
        )
        if blocked:
            b = np.array(blocked, dtype=np.float64)
            hit = (
                (px[:, None] < b[None, :, 2] - EPS)
                & (b[None, :, 0] < px[:, None] + pw - EPS)
                & (py[:, None] < b[None, :, 3] - EPS)
                & (b[None, :, 1] < py[:, None] + ph - EPS)
            )
            legal &= ~hit.any(axis=1)
        if not legal.any():
            return None
        px = px[legal]
        py = py[legal]

        nz = np.flatnonzero(weights)
        cx = px + macro.pad_x + macro.w / 2
        cy = py + macro.pad_y + macro.h / 2
        dist = np.abs(pos[nz, 0][None, :] - cx[:, None]) + np.abs(
            pos[nz, 1][None, :] - cy[:, None]
        )
        score = np.round(dist.dot(weights[nz].astype(np.float64)), 6)
        if bottom_left:
            order = np.lexsort((score, np.round(px, 6), np.round(py, 6)))
        else:
            order = np.lexsort((np.round(px, 6), np.round(py, 6), score))
        k = order[0]
        return (float(px[k]), float(py[k]), float(px[k] + pw), float(py[k] + ph))


def build_partition_tree(macro_db, config):
    """
    @brief recursively cut the top-level layout until no partition holds
    more than max_leaf_macros macros; a partition no cut fits stays a leaf
    @param config trial configuration with first_cut, cut_policy, max_leaf_macros and cut_offset
    """
    root = Partition(macro_db.layout, range(macro_db.num_macros))
    first_vertical = config["first_cut"] == "vertical"
    stack = [root]
    while stack:
        part = stack.pop()
        if len(part.macros) <= config["max_leaf_macros"]:
            continue
        if config["cut_policy"] == "aspect":
            vertical = part.region.width >= part.region.height
        else:
            vertical = first_vertical == (part.depth % 2 == 0)
        try:
            stack.extend(part.subdivide(macro_db, vertical, config["cut_offset"]))
        except PartitionInfeasible as e:
            logging.debug("%s, kept as a leaf" % (e))
    return root


def solve_partition_tree(macro_db, config):
    """
    @brief build the tree and pack every leaf.
    A leaf that cannot be packed is merged into its parent, which is packed
    again as a single leaf, up to the root.
    @return root partition; every leaf holds the locations of its macros
    """
    root = build_partition_tree(macro_db, config)
    order_key = config.get("order_key", "connectivity")
    pending = root.leaves()
    estimates = {}
    for leaf in pending:
        for idx in leaf.macros:
            estimates[idx] = leaf.region.center()
    placed = {}
    while pending:
        part = pending.pop(0)
        try:
            part.finalize(macro_db, placed, estimates, order_key)
        except PartitionInfeasible as e:
            if part.parent is None:
                raise
            part = part.parent
            logging.debug("%s, repacking %s" % (e, str(part.region)))
            merged = set(part.leaves())
            pending = [leaf for leaf in pending if leaf not in merged]
            for idx in part.macros:
                placed.pop(idx, None)
            part.merge()
            pending.insert(0, part)
    return root
