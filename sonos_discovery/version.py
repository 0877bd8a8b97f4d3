# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package sonos_discovery finds Sonos speakers on the local network with SSDP
"""

# import importlib.metadata as _metadata
# __version = _metadata.version(__package__.replace('_','-')) #  e.g., '0.1.0'


__version__ =  "0.1.0"


__all__ = [ '__version__' ]
