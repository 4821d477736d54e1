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
# @file   draw_place.py
# @brief  Plot macro placement to an image
#

import logging

import matplotlib
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

matplotlib.use("Agg")


class DrawPlace(object):
    """
    @brief Draw macros, their halo/channel padding and fixed blocks inside the layout
    """

    def __init__(self, macro_db):
        self.macro_db = macro_db

    def forward(self, lx, ly, filename, max_edges=200):
        """
        @param lx macro lower-left x locations
        @param ly macro lower-left y locations
        @param filename image file, suffix specifies the format
        @param max_edges strongest connections drawn as lines
        """
        layout = self.macro_db.layout
        core = self.macro_db.core
        fig = plt.figure(figsize=(8, 8 * max(core.height, 1) / max(core.width, 1)))
        ax = fig.gca()
        ax.add_patch(
            Rectangle(
                (core.lx, core.ly), core.width, core.height, fill=False, color="black"
            )
        )
        ax.add_patch(
            Rectangle(
                (layout.lx, layout.ly),
                layout.width,
                layout.height,
                fill=False,
                linestyle="--",
                color="green",
            )
        )
        for olx, oly, oux, ouy in self.macro_db.obstacles:
            ax.add_patch(
                Rectangle((olx, oly), oux - olx, ouy - oly, color="gray", alpha=0.6)
            )

        centers = []
        for macro, x, y in zip(self.macro_db.macros, lx, ly):
            ax.add_patch(
                Rectangle(
                    (x - macro.pad_x, y - macro.pad_y),
                    macro.padded_w,
                    macro.padded_h,
                    fill=False,
                    linestyle=":",
                    color="orange",
                )
            )
            ax.add_patch(
                Rectangle((x, y), macro.w, macro.h, color="tab:blue", alpha=0.5)
            )
            ax.annotate(
                macro.name(),
                (x + macro.w / 2, y + macro.h / 2),
                ha="center",
                va="center",
                fontsize=6,
            )
            centers.append((x + macro.w / 2, y + macro.h / 2))
        centers.extend(tuple(p) for p in self.macro_db.edge_positions())

        # connections, symmetric weight drawn once
        weight = self.macro_db.macro_weight
        pairs = []
        for i in range(weight.shape[0]):
            for j in range(i + 1, weight.shape[0]):
                w = weight[i][j] + weight[j][i]
                if w > 0:
                    pairs.append((w, i, j))
        pairs.sort(key=lambda p: -p[0])
        max_w = pairs[0][0] if pairs else 1
        for w, i, j in pairs[:max_edges]:
            ax.plot(
                [centers[i][0], centers[j][0]],
                [centers[i][1], centers[j][1]],
                color="red",
                linewidth=0.3 + 2.0 * w / max_w,
                alpha=0.5,
            )

        ax.set_xlim(core.lx, core.ux)
        ax.set_ylim(core.ly, core.uy)
        ax.set_aspect("equal")
        plt.savefig(filename, dpi=200)
        plt.close(fig)
        logging.info("plot placement to %s" % (filename))
        return True
