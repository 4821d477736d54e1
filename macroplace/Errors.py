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
# @file   Errors.py
# @brief  Error kinds raised by the macro placement flow
#


class MacroPlaceError(Exception):
    """
    @brief base class of all macro placement errors
    """


class ConfigError(MacroPlaceError):
    """
    @brief malformed or contradictory halo/channel/fence configuration
    """

    def __init__(self, reason, source=None):
        self.reason = reason
        self.source = source
        if source:
            super().__init__("%s: %s" % (source, reason))
        else:
            super().__init__(reason)


class MissingTimingData(MacroPlaceError):
    """
    @brief liberty or timing graph data unavailable, weighting falls back to netlist mode
    """


class PlacementInfeasible(MacroPlaceError):
    """
    @brief no trial fits the macros inside the fence region
    """

    def __init__(self, reason, failures=None):
        self.reason = reason
        self.failures = failures or []
        super().__init__(reason)


class PartitionInfeasible(PlacementInfeasible):
    """
    @brief a single partition cannot hold its macros; fatal to one trial only
    """

    def __init__(self, region, macro_name, reason):
        self.region = region
        self.macro_name = macro_name
        super().__init__("cannot place '%s' in %s: %s" % (macro_name, region, reason))


class InternalInconsistency(MacroPlaceError):
    """
    @brief programming contract violation, e.g. a macro index outside the weight matrix
    """
