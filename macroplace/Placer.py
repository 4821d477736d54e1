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
# @file   Placer.py
# @brief  Main file to run the macro placement flow.
#

import os
import sys
import enum
import time
import logging
import concurrent.futures

import numpy as np

from macroplace import Params
from macroplace import DesignIO
from macroplace import TrialSpace
from macroplace.Adjacency import AdjacencyEngine
from macroplace.Errors import (
    ConfigError,
    InternalInconsistency,
    PartitionInfeasible,
    PlacementInfeasible,
)
from macroplace.EvalMetrics import TrialMetrics, metrics_dataframe
from macroplace.MacroDB import MacroDB
from macroplace.Partition import solve_partition_tree
from macroplace.ops.draw_place.draw_place import DrawPlace
from macroplace.ops.weighted_wl.weighted_wl import WeightedWL


class PlacerState(enum.Enum):
    UNINITIALIZED = 0
    CONFIGURED = 1
    MACRO_LIST_BUILT = 2
    WEIGHTS_COMPUTED = 3
    PLACING = 4
    SOLVED = 5


class MacroPlacer(object):
    """
    @brief Top API to place macros.
    Bind a layout database and a timing graph with init(), adjust the
    configuration with the setters, then call place_macros().
    """

    def __init__(self, params=None):
        """
        @param params parameters as Params, dict, JSON file or command line list
        """
        self.params = Params.Params()
        if params is not None:
            self.params.update(params)
        self.db = None
        self.sta = None
        self.logger = logging.getLogger()
        self.state = PlacerState.UNINITIALIZED

        self.macro_db = None
        self.adjacency = None
        self.wwl_op = None
        self.sol_count = 0
        self.metrics = []
        self.best = None

    def init(self, db, sta, logger=None):
        """
        @brief bind the collaborators
        @param db layout database
        @param sta timing graph
        @param logger optional logger of the placer
        """
        if logger is not None:
            self.logger = logger
        self.db = db
        self.sta = sta
        if db is not None and sta is not None:
            self.state = PlacerState.CONFIGURED
        else:
            self.state = PlacerState.UNINITIALIZED
            self.logger.warning(
                "placer needs both a layout database and a timing graph"
            )

    ##########################################################################
    # configuration

    def _is_solved(self, name):
        if self.state == PlacerState.SOLVED:
            self.logger.warning("%s ignored, macros are already placed" % (name))
            return True
        return False

    def set_halo(self, halo_x, halo_y):
        if self._is_solved("set_halo"):
            return
        self.params.macro_halo_x = Params.check_spacing(halo_x, "macro_halo_x")
        self.params.macro_halo_y = Params.check_spacing(halo_y, "macro_halo_y")

    def set_channel(self, channel_x, channel_y):
        if self._is_solved("set_channel"):
            return
        self.params.macro_channel_x = Params.check_spacing(channel_x, "macro_channel_x")
        self.params.macro_channel_y = Params.check_spacing(channel_y, "macro_channel_y")

    def set_fence_region(self, lx, ly, ux, uy):
        if self._is_solved("set_fence_region"):
            return
        self.params.fence_region = Params.check_fence_region([lx, ly, ux, uy])

    def set_verbose_level(self, verbose):
        if self._is_solved("set_verbose_level"):
            return
        self.params.verbose = verbose
        self.logger.setLevel(logging.DEBUG if verbose >= 1 else logging.INFO)

    def set_global_config(self, filename):
        if self._is_solved("set_global_config"):
            return
        self.params.global_config = filename

    def set_local_config(self, filename):
        if self._is_solved("set_local_config"):
            return
        self.params.local_config = filename

    ##########################################################################
    # placement

    def setup_macro_db(self):
        """
        @brief fresh session database; file configuration overrides the setters
        """
        params = self.params
        macro_db = MacroDB(self.db)
        spacing = {key: getattr(params, key) for key in Params.SPACING_KEYS}
        fence = params.fence_region
        fence_source = None
        if params.global_config:
            config = Params.parse_global_config(params.global_config)
            for key in Params.SPACING_KEYS:
                if key in config:
                    spacing[key] = config[key]
            if "fence_region" in config:
                fence = config["fence_region"]
                fence_source = params.global_config
        macro_db.set_spacing(
            spacing["macro_halo_x"],
            spacing["macro_halo_y"],
            spacing["macro_channel_x"],
            spacing["macro_channel_y"],
            params.global_config or None,
        )
        macro_db.set_fence_region(fence, fence_source)
        if params.local_config:
            macro_db.set_local_config(
                Params.parse_local_config(params.local_config), params.local_config
            )
        macro_db.fill_macro_stor()
        return macro_db

    def place_macros(self):
        """
        @brief run the whole flow and commit the best trial to the database
        @return True on success
        """
        if self.state == PlacerState.UNINITIALIZED:
            raise ConfigError(
                "no %s bound, call init() first"
                % ("layout database" if self.db is None else "timing graph")
            )
        tt = time.time()
        self.sol_count = 0
        self.metrics = []
        self.best = None

        self.macro_db = self.setup_macro_db()
        self.state = PlacerState.MACRO_LIST_BUILT

        self.adjacency = AdjacencyEngine(
            self.macro_db, self.sta, self.params.register_adjacency_depth
        )
        self.adjacency.find_adjacencies()
        w, h = self.macro_db.macro_sizes()
        self.wwl_op = WeightedWL(
            self.macro_db.macro_weight, w, h, self.macro_db.edge_positions()
        )
        self.state = PlacerState.WEIGHTS_COMPUTED

        self.state = PlacerState.PLACING
        trials = TrialSpace.sample_trials(
            self.params.num_trials,
            self.params.random_seed,
            self.params.max_leaf_macros,
        )
        self.metrics = self.run_trials(trials)
        self.sol_count = len(self.metrics)

        for metrics in self.metrics:
            if metrics.feasible and (
                self.best is None or metrics.weighted_wl < self.best.weighted_wl
            ):
                self.best = metrics
        if self.best is None:
            self.state = PlacerState.CONFIGURED
            raise PlacementInfeasible(
                "none of %d trials fits %d macros in %s"
                % (self.sol_count, self.macro_db.num_macros, self.macro_db.layout),
                [m.reason for m in self.metrics],
            )

        self.update_macro_coordi(self.best.partition)
        self.update_opendb_coordi()
        self.state = PlacerState.SOLVED
        self.logger.info(
            "best trial %d of %d, weighted WL %g"
            % (self.best.trial_id, self.sol_count, self.best.weighted_wl)
        )
        if self.params.plot_flag:
            self.plot()
        self.logger.info("macro placement takes %.3f seconds" % (time.time() - tt))
        return True

    def run_trial(self, trial_id, config):
        metrics = TrialMetrics(trial_id, config)
        tt = time.time()
        try:
            root = solve_partition_tree(self.macro_db, config)
        except PartitionInfeasible as e:
            metrics.feasible = False
            metrics.reason = str(e)
        else:
            lx, ly = self.macro_db.macro_locations()
            for leaf in root.leaves():
                for idx, (x, y) in leaf.locations.items():
                    lx[idx] = x
                    ly[idx] = y
            metrics.feasible = True
            metrics.partition = root
            metrics.num_partitions = len(root.leaves())
            metrics.lx = lx
            metrics.ly = ly
            metrics.weighted_wl = self.weighted_wl(lx, ly)
        metrics.eval_time = time.time() - tt
        if metrics.feasible:
            self.logger.info("%s" % (metrics))
        else:
            self.logger.warning("%s" % (metrics))
        return metrics

    def run_trials(self, trials):
        """
        @brief run trials sequentially or on a thread pool; results are in trial order
        """
        time_limit = self.params.time_limit
        start = time.time()
        results = []
        if self.params.num_threads <= 1:
            for trial_id, config in enumerate(trials):
                # the first trial always runs
                if trial_id and time_limit > 0 and time.time() - start > time_limit:
                    self.logger.warning(
                        "time limit %g s reached after %d trials" % (time_limit, trial_id)
                    )
                    break
                results.append(self.run_trial(trial_id, config))
            return results

        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.params.num_threads
        )
        futures = [
            executor.submit(self.run_trial, trial_id, config)
            for trial_id, config in enumerate(trials)
        ]
        try:
            for trial_id, future in enumerate(futures):
                timeout = None
                if trial_id and time_limit > 0:
                    timeout = max(time_limit - (time.time() - start), 0)
                try:
                    results.append(future.result(timeout=timeout))
                except concurrent.futures.TimeoutError:
                    self.logger.warning(
                        "time limit %g s reached after %d trials" % (time_limit, trial_id)
                    )
                    break
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
        return results

    def weighted_wl(self, lx, ly):
        return float(self.wwl_op(np.concatenate([lx, ly])).item())

    def get_weighted_wl(self):
        """
        @brief weighted wirelength of the current macro locations
        """
        if self.macro_db is None:
            return 0.0
        lx, ly = self.macro_db.macro_locations()
        return self.weighted_wl(lx, ly)

    def get_solution_count(self):
        return self.sol_count

    def weight(self, i, j):
        if self.macro_db is None or self.macro_db.macro_weight is None:
            raise InternalInconsistency("macro weights are not computed")
        return self.macro_db.weight(i, j)

    def update_macro_coordi(self, partition):
        """
        @brief copy the leaf locations of a solved partition tree into the macro records
        """
        for leaf in partition.leaves():
            for idx, (lx, ly) in leaf.locations.items():
                macro = self.macro_db.macros[idx]
                macro.lx = lx
                macro.ly = ly

    def update_opendb_coordi(self):
        for macro in self.macro_db.macros:
            self.db.set_location(macro.inst, macro.lx, macro.ly, "LOCKED")
        self.logger.info("committed %d macro locations" % (self.macro_db.num_macros))

    def update_netlist(self, partition):
        """
        @brief weights restricted to the macros of a partition plus the four edges
        """
        indices = list(partition.macros) + [
            self.macro_db.edge_index(e) for e in range(4)
        ]
        partition.net_table = self.macro_db.macro_weight[np.ix_(indices, indices)].copy()
        return partition.net_table

    def trial_dataframe(self):
        return metrics_dataframe(self.metrics)

    def plot(self):
        path = os.path.join(self.params.result_dir, self.params.design_name())
        os.makedirs(path, exist_ok=True)
        lx, ly = self.macro_db.macro_locations()
        DrawPlace(self.macro_db).forward(
            lx, ly, os.path.join(path, "%s.macros.png" % (self.params.design_name()))
        )


def main(args):
    """
    @brief command line flow: read the design, place macros, write locations
    """
    if len(args) == 0 or "-h" in args or "--help" in args:
        params = Params.Params()
        params.printWelcome()
        params.printHelp()
        return 0

    params = Params.Params()
    params.load(args)
    os.makedirs(params.result_dir, exist_ok=True)

    # set up logging
    logging.root.name = "MacroPlace"
    logging.basicConfig(
        level=logging.DEBUG if params.verbose >= 1 else logging.INFO,
        format="[%(levelname)-7s] %(name)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(
                os.path.join(params.result_dir, "MacroPlace.log"), mode="w"
            ),
        ],
    )
    params.printWelcome()
    if not params.design_input:
        logging.error("design_input is required")
        return 1
    logging.info("parameters = %s" % (params))

    db, sta = DesignIO.read_design(params.design_input)
    placer = MacroPlacer(params)
    placer.init(db, sta)
    placer.place_macros()

    path = os.path.join(params.result_dir, params.design_name())
    os.makedirs(path, exist_ok=True)
    DesignIO.write_placement(
        db, os.path.join(path, "%s.macros.json" % (params.design_name()))
    )
    logging.info("trials:\n%s" % (placer.trial_dataframe().to_string()))
    return 0


def cli():
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
