#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

class SonosDiscoveryError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class SetupError(SonosDiscoveryError):
  """The discovery socket could not be created, bound, or the search request could not be sent."""
  pass

class MalformedReplyError(SonosDiscoveryError):
  """A received reply could not be interpreted. Never raised out of a discovery run."""
  pass

class EngineReuseError(SonosDiscoveryError):
  """A DiscoveryEngine was started more than once."""
  pass
