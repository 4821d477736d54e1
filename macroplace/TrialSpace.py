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
# @file   TrialSpace.py
# @brief  Search space of partitioner settings explored by the placement trials
#

import logging

import ConfigSpace as CS
import ConfigSpace.hyperparameters as CSH

MAX_LEAF_MACROS_LOWER = 1
MAX_LEAF_MACROS_UPPER = 8


def get_configspace(seed=None, max_leaf_macros=4):
    """
    @brief configuration space of one trial
    @param seed sampling seed
    @param max_leaf_macros default leaf capacity, clamped into the allowed range
    """
    cs = CS.ConfigurationSpace(seed=seed)

    first_cut = CSH.CategoricalHyperparameter(
        "first_cut", ["vertical", "horizontal"], default_value="vertical"
    )
    cut_policy = CSH.CategoricalHyperparameter(
        "cut_policy", ["aspect", "alternate"], default_value="aspect"
    )
    max_leaf = CSH.UniformIntegerHyperparameter(
        "max_leaf_macros",
        lower=MAX_LEAF_MACROS_LOWER,
        upper=MAX_LEAF_MACROS_UPPER,
        default_value=min(
            max(int(max_leaf_macros), MAX_LEAF_MACROS_LOWER), MAX_LEAF_MACROS_UPPER
        ),
    )
    cut_offset = CSH.UniformIntegerHyperparameter(
        "cut_offset", lower=-2, upper=2, default_value=0
    )
    order_key = CSH.CategoricalHyperparameter(
        "order_key", ["connectivity", "area"], default_value="connectivity"
    )
    cs.add(first_cut, cut_policy, max_leaf, cut_offset, order_key)
    return cs


def to_trial_config(config):
    """
    @brief plain dict with python scalars
    """
    config = dict(config)
    return {
        "first_cut": str(config["first_cut"]),
        "cut_policy": str(config["cut_policy"]),
        "max_leaf_macros": int(config["max_leaf_macros"]),
        "cut_offset": int(config["cut_offset"]),
        "order_key": str(config["order_key"]),
    }


def sample_trials(num_trials, seed=None, max_leaf_macros=4):
    """
    @brief default configuration first, then distinct random ones
    @return list of at most num_trials trial configurations, deterministic per seed
    """
    cs = get_configspace(seed, max_leaf_macros)
    trials = []
    seen = set()
    if num_trials <= 0:
        return trials

    candidate = to_trial_config(cs.get_default_configuration())
    attempts = 0
    while True:
        key = tuple(sorted(candidate.items()))
        if key not in seen:
            seen.add(key)
            trials.append(candidate)
        if len(trials) >= num_trials:
            break
        attempts += 1
        if attempts > 50 * num_trials:
            logging.warning(
                "only %d distinct trial configurations out of %d requested"
                % (len(trials), num_trials)
            )
            break
        candidate = to_trial_config(cs.sample_configuration())
    return trials
