"""Render asciicast recordings as SVG animations using the colors of your terminal"""
