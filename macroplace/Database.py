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
# @file   Database.py
# @brief  In-memory layout database holding instance geometry and boundary pins
#

import logging
from dataclasses import dataclass
from typing import Optional

from macroplace.Layout import Layout

PLACEMENT_STATUS = ("NONE", "UNPLACED", "PLACED", "FIRM", "LOCKED", "FIXED")


@dataclass
class Instance:
    name: str
    master: str
    x: float  # lower left
    y: float  # lower left
    width: float
    height: float
    is_block: bool = False
    status: str = "PLACED"

    @property
    def is_fixed(self):
        return self.status in ("FIXED", "FIRM", "LOCKED")


@dataclass
class BoundaryPin:
    name: str
    direction: str  # input, output or inout
    net: Optional[str] = None
    x: Optional[float] = None  # None while unplaced
    y: Optional[float] = None
    is_clock: bool = False

    @property
    def is_placed(self):
        return self.x is not None and self.y is not None


class LayoutDatabase(object):
    """
    @brief layout database; instances are addressed by integer handles that stay valid for the db lifetime
    """

    def __init__(self, core, dbu_per_micron=1000):
        self.core = core if isinstance(core, Layout) else Layout(*core)
        self.dbu_per_micron = dbu_per_micron
        self._instances = []
        self._name2handle = {}
        self._boundary_pins = []

    def add_instance(self, inst):
        assert inst.name not in self._name2handle, "duplicate instance %s" % (
            inst.name
        )
        assert inst.status in PLACEMENT_STATUS, "unknown status %s" % (inst.status)
        handle = len(self._instances)
        self._instances.append(inst)
        self._name2handle[inst.name] = handle
        return handle

    def add_boundary_pin(self, pin):
        self._boundary_pins.append(pin)
        return pin

    def instances(self):
        return range(len(self._instances))

    def macro_instances(self):
        """
        @brief handles of block instances the placer may move
        """
        return [
            handle
            for handle, inst in enumerate(self._instances)
            if inst.is_block and not inst.is_fixed
        ]

    def fixed_block_instances(self):
        return [
            handle
            for handle, inst in enumerate(self._instances)
            if inst.is_block and inst.is_fixed
        ]

    def instance(self, handle):
        return self._instances[handle]

    def find_instance(self, name):
        return self._name2handle.get(name)

    def boundary_pins(self):
        return list(self._boundary_pins)

    def set_location(self, handle, x, y, status="LOCKED"):
        inst = self._instances[handle]
        inst.x = float(x)
        inst.y = float(y)
        inst.status = status
        logging.debug("move %s to (%g, %g) %s" % (inst.name, x, y, status))

    @property
    def num_instances(self):
        return len(self._instances)

    def __str__(self):
        return "LayoutDatabase(core %s, %d instances, %d boundary pins)" % (
            self.core,
            len(self._instances),
            len(self._boundary_pins),
        )
