"""
Shared fixtures for inft-deploy tests.

This module provides an in-memory stand-in for the artifact layer: every
deployment, attach and transaction is appended to a shared call log so the
routines can be checked without a node.
"""

import itertools

import pytest

A0 = '0x' + 'a0' * 20
H0 = '0x' + 'b0' * 20


class FakeInstance:
    def __init__(self, log, name, address, args=()):
        self.log = log
        self.name = name
        self.address = address
        self.args = args

    def transact(self, fn_name, *args, sender):
        self.log.append(('transact', self.name, fn_name, args, sender))
        return {'status': 1}

    def __repr__(self):
        return f"<Fake {self.name} at {self.address}>"


class FakeArtifact:
    def __init__(self, registry, name):
        self.registry = registry
        self.name = name

    def new(self, *args, sender):
        address = '0x%040x' % next(self.registry.counter)
        self.registry.log.append(('new', self.name, args, sender))
        return FakeInstance(self.registry.log, self.name, address, args)

    def at(self, address):
        self.registry.log.append(('at', self.name, address))
        return FakeInstance(self.registry.log, self.name, address)


class FakeArtifacts:
    def __init__(self):
        self.log = []
        self.required = []
        self.counter = itertools.count(1)

    def require(self, name):
        name = name.lstrip('./')
        self.required.append(name)
        return FakeArtifact(self, name)

    def calls(self, kind):
        return [entry for entry in self.log if entry[0] == kind]


@pytest.fixture
def artifacts():
    return FakeArtifacts()
