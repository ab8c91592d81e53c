# Copyright 2024 Canonical Ltd.
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

"""Configure package managers and target-specific files inside an image rootfs.

Modules:
    managers: package manager drivers and the `load` registry
    apt, dnf: the Debian and Enterprise Linux drivers
    repository: repository file and signing key handling shared by the drivers
    generators: per-target artifact generators such as the fstab generator
"""
