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
# @file   EvalMetrics.py
# @brief  Evaluation metrics of placement trials
#

import pandas as pd


class TrialMetrics(object):
    """
    @brief outcome of one placement trial
    """

    def __init__(self, trial_id=None, config=None):
        """
        @brief initialization
        @param trial_id index of the trial
        @param config trial configuration
        """
        self.trial_id = trial_id
        self.config = config
        self.weighted_wl = None
        self.feasible = None
        self.reason = None
        self.num_partitions = None
        self.eval_time = None
        self.lx = None
        self.ly = None
        self.partition = None

    def __str__(self):
        """
        @brief convert to string
        """
        content = ""
        if self.trial_id is not None:
            content = "trial %3d" % (self.trial_id)
        if self.config is not None:
            content += ", %s" % (
                " ".join("%s=%s" % (k, v) for k, v in self.config.items())
            )
        if self.weighted_wl is not None:
            content += ", WWL %.6E" % (self.weighted_wl)
        if self.num_partitions is not None:
            content += ", %d leaves" % (self.num_partitions)
        if self.feasible is False:
            content += ", infeasible: %s" % (self.reason)
        if self.eval_time is not None:
            content += ", time %.3fms" % (self.eval_time * 1000)
        return content

    def __repr__(self):
        """
        @brief print
        """
        return self.__str__()

    def to_record(self):
        record = {"trial_id": self.trial_id}
        if self.config is not None:
            record.update(self.config)
        record.update(
            {
                "weighted_wl": self.weighted_wl,
                "feasible": self.feasible,
                "reason": self.reason,
                "num_partitions": self.num_partitions,
                "eval_time": self.eval_time,
            }
        )
        return record


def metrics_dataframe(metrics):
    """
    @brief one row per trial, ordered by trial id
    """
    columns = [
        "trial_id",
        "first_cut",
        "cut_policy",
        "max_leaf_macros",
        "cut_offset",
        "order_key",
        "weighted_wl",
        "feasible",
        "reason",
        "num_partitions",
        "eval_time",
    ]
    records = [m.to_record() for m in sorted(metrics, key=lambda m: m.trial_id)]
    return pd.DataFrame.from_records(records, columns=columns)
