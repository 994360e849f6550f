"""Users module"""
