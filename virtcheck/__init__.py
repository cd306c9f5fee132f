"""
virtcheck - ContainerDisk VMI end-to-end harness

Launches KubeVirt virtual machine instances backed by container disks,
verifies they start with every disk attached, and drives console sessions
against them.
"""

__version__ = '1.0.0'
__author__ = 'virtcheck Contributors'
__license__ = 'Apache 2.0'
