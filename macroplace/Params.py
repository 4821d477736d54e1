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
# @file   Params.py
# @brief  User parameters and the global/local macro configuration files
#

import os
import json
import math
import logging
from collections import OrderedDict

from macroplace.Errors import ConfigError

SPACING_KEYS = ("macro_halo_x", "macro_halo_y", "macro_channel_x", "macro_channel_y")
GLOBAL_CONFIG_KEYS = SPACING_KEYS + ("fence_region",)


class Params:
    """
    @brief Parameter class
    """

    def __init__(self):
        """
        @brief initialization
        """
        filename = os.path.join(os.path.dirname(__file__), "params.json")
        self.__dict__ = {}
        params_dict = {}
        with open(filename, "r") as f:
            params_dict = json.load(f, object_pairs_hook=OrderedDict)
        for key, value in params_dict.items():
            if "default" in value:
                self.__dict__[key] = value["default"]
            else:
                self.__dict__[key] = None
        self.__dict__["params_dict"] = params_dict

    def printWelcome(self):
        """
        @brief print welcome message
        """
        content = """
========================================================
                       MacroPlace
     partition-based macro placement with
       timing-graph derived connectivity
========================================================
"""
        logging.info(content)

    def printHelp(self):
        """
        @brief print help message for JSON parameters
        """
        content = self.toMarkdownTable()
        logging.info(content)

    def toMarkdownTable(self):
        """
        @brief convert to markdown table
        """
        key_length = len("JSON Parameter")
        key_length_map = []
        default_length = len("Default")
        default_length_map = []
        description_length = len("Description")
        description_length_map = []

        def getDefaultColumn(key, value):
            flag = isinstance(value["default"], str)
            if flag and not value["default"] and "required" in value:
                return value["required"]
            else:
                return value["default"]

        for key, value in self.params_dict.items():
            key_length_map.append(len(key))
            default_length_map.append(len(str(getDefaultColumn(key, value))))
            description_length_map.append(len(value["description"]))
            key_length = max(key_length, key_length_map[-1])
            default_length = max(default_length, default_length_map[-1])
            description_length = max(description_length, description_length_map[-1])

        content = "| %s %s| %s %s| %s %s|\n" % (
            "JSON Parameter",
            " " * (key_length - len("JSON Parameter") + 1),
            "Default",
            " " * (default_length - len("Default") + 1),
            "Description",
            " " * (description_length - len("Description") + 1),
        )
        content += "| %s | %s | %s |\n" % (
            "-" * (key_length + 1),
            "-" * (default_length + 1),
            "-" * (description_length + 1),
        )
        count = 0
        for key, value in self.params_dict.items():
            content += "| %s %s| %s %s| %s %s|\n" % (
                key,
                " " * (key_length - key_length_map[count] + 1),
                str(getDefaultColumn(key, value)),
                " " * (default_length - default_length_map[count] + 1),
                value["description"],
                " " * (description_length - description_length_map[count] + 1),
            )
            count += 1
        return content

    def toJson(self):
        """
        @brief convert to json
        """
        data = {}
        for key, value in self.__dict__.items():
            if key != "params_dict":
                data[key] = value
        return data

    def fromJson(self, data):
        """
        @brief load from json
        """
        for key, value in data.items():
            self.__dict__[key] = value

    def dump(self, filename):
        """
        @brief dump to json file
        """
        with open(filename, "w") as f:
            json.dump(self.toJson(), f)

    def load(self, args):
        """
        @brief load parameters
        """
        if len(args) == 1 and args[0].endswith(".json"):
            with open(args[0], "r") as f:
                self.fromJson(json.load(f))
        else:
            self.fromCmdLine(args)

    def __str__(self):
        """
        @brief string
        """
        return str(self.toJson())

    def __repr__(self):
        """
        @brief print
        """
        return self.__str__()

    def __eq__(self, other):
        """
        @brief test equality
        """
        if isinstance(other, Params):
            ignore = {"params_dict"}
            return all(
                (self.__dict__[key] == other.__dict__[key]) | (key in ignore)
                for key in self.__dict__
            )
        return False

    def design_name(self):
        """
        @brief speculate the design name for dumping out intermediate solutions
        """
        if self.design_input:
            return os.path.basename(self.design_input).replace(".json", "")
        return "design"

    def fromCmdLine(self, args):
        """
        @brief load from command line, values are decoded as JSON when possible
        """
        for key, value in (
            (k.lstrip("-"), v) for k, v in (arg.split("=", 1) for arg in args)
        ):
            try:
                self.__dict__[key] = json.loads(value)
            except ValueError:
                self.__dict__[key] = value

    def update(self, params):
        """
        @brief update parameters
        """
        if isinstance(params, dict):
            self.fromJson(params)
        elif isinstance(params, str):
            self.load([params])
        elif isinstance(params, list):
            self.load(params)
        elif isinstance(params, Params):
            self.fromJson(params.toJson())


def check_spacing(value, key, source=None):
    """
    @brief validate one halo or channel value
    @return the value as float
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError("%s must be a number, got %r" % (key, value), source)
    if math.isnan(value) or value < 0:
        raise ConfigError("%s must be non-negative, got %g" % (key, value), source)
    return float(value)


def check_fence_region(fence, source=None):
    """
    @brief validate a fence rectangle
    @return [lx, ly, ux, uy] as floats, or None for an empty fence
    """
    if fence is None or len(fence) == 0:
        return None
    if len(fence) != 4 or any(
        isinstance(v, bool) or not isinstance(v, (int, float)) for v in fence
    ):
        raise ConfigError("fence_region must be [lx, ly, ux, uy], got %r" % (fence,), source)
    lx, ly, ux, uy = [float(v) for v in fence]
    if ux < lx or uy < ly:
        raise ConfigError(
            "fence region (%g, %g) - (%g, %g) is inverted" % (lx, ly, ux, uy), source
        )
    return [lx, ly, ux, uy]


def _read_json(filename):
    try:
        with open(filename, "r") as f:
            return json.load(f, object_pairs_hook=OrderedDict)
    except OSError as e:
        raise ConfigError("cannot read configuration: %s" % (e.strerror), filename)
    except ValueError as e:
        raise ConfigError("malformed JSON: %s" % (e), filename)


def parse_global_config(filename):
    """
    @brief read chip-wide halo, channel and fence region
    @return dict holding a subset of GLOBAL_CONFIG_KEYS
    """
    data = _read_json(filename)
    if not isinstance(data, dict):
        raise ConfigError("global configuration must be a JSON object", filename)
    config = OrderedDict()
    for key, value in data.items():
        if key not in GLOBAL_CONFIG_KEYS:
            raise ConfigError("unknown key %s" % (key), filename)
        if key == "fence_region":
            config[key] = check_fence_region(value, filename)
        else:
            config[key] = check_spacing(value, key, filename)
    logging.info("read global configuration %s: %s" % (filename, dict(config)))
    return config


def parse_local_config(filename):
    """
    @brief read per-macro halo and channel overrides
    @return dict of macro name to a dict holding a subset of SPACING_KEYS
    """
    data = _read_json(filename)
    if not isinstance(data, dict):
        raise ConfigError("local configuration must be a JSON object", filename)
    config = OrderedDict()
    for name, overrides in data.items():
        if not isinstance(overrides, dict):
            raise ConfigError("entry of %s must be a JSON object" % (name), filename)
        entry = {}
        for key, value in overrides.items():
            if key not in SPACING_KEYS:
                raise ConfigError("unknown key %s for %s" % (key, name), filename)
            entry[key] = check_spacing(value, "%s of %s" % (key, name), filename)
        config[name] = entry
    logging.info("read %d local macro configurations from %s" % (len(config), filename))
    return config
