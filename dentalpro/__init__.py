"""Dental Pro API - clinic management backend"""
