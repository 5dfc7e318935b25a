# -*- coding: utf-8 -*-
"""todoclock - time tracking for todo.txt task lists."""

APP_NAME = "todoclock"
APP_VERS = "0.1.0"
