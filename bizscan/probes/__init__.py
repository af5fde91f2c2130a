"""Delivery platform probes, one strategy per platform."""
from bizscan.probes.base import PlatformProbe
from bizscan.probes.ddangyo import DdangyoProbe
from bizscan.probes.yogiyo import YogiyoProbe
from bizscan.probes.coupangeats import CoupangEatsProbe

__all__ = ["PlatformProbe", "DdangyoProbe", "YogiyoProbe", "CoupangEatsProbe"]
