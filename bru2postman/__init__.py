# -*- coding: utf-8 -*-
#
# Bru2Postman - Bruno to Postman Converter
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#

__version__ = "0.3.0"
