# -*- coding: utf-8 -*-

'''

    appengine_apis robot

    a small webhook framework for wave robots: decodes incoming event
    bundles into a context of wavelets and blips, dispatches events and
    commands to handler methods, and serializes the operations those
    handlers queue.

    :author: Sam Gammon <sam@momentum.io>
    :copyright: (c) momentum labs, 2013
    :license: The inspection, use, distribution, modification or implementation
              of this source code is governed by a private license - all rights
              are reserved by the Authors (collectively, "momentum labs, ltd")
              and held under relevant California and US Federal Copyright laws.
              For full details, see ``LICENSE.md`` at the root of this project.
              Continued inspection of this source code demands agreement with
              the included license and explicitly means acceptance to these terms.

'''

# stdlib
import collections

# 3rd party
import jinja2

# appengine_apis
from appengine_apis.util import json
from appengine_apis.util import decorators
from appengine_apis.util.datastructures import DictProxy
from appengine_apis.exceptions import AppEngineAPIError


## Constants
EVENT_TYPES = (
    'WAVELET_BLIP_CREATED',
    'WAVELET_BLIP_REMOVED',
    'WAVELET_PARTICIPANTS_CHANGED',
    'WAVELET_SELF_ADDED',
    'WAVELET_SELF_REMOVED',
    'WAVELET_TIMESTAMP_CHANGED',
    'WAVELET_TITLE_CHANGED',
    'WAVELET_VERSION_CHANGED',
    'BLIP_CONTRIBUTORS_CHANGED',
    'BLIP_DELETED',
    'BLIP_SUBMITTED',
    'BLIP_TIMESTAMP_CHANGED',
    'BLIP_VERSION_CHANGED',
    'DOCUMENT_CHANGED',
    'FORM_BUTTON_CLICKED'
)

DOCUMENT_REPLACE = 'DOCUMENT_REPLACE'
DOCUMENT_APPEND = 'DOCUMENT_APPEND'

_OPERATION_CLASS = 'com.google.wave.api.impl.OperationImpl'
_BUNDLE_CLASS = 'com.google.wave.api.impl.OperationMessageBundle'
_LIST_CLASS = 'java.util.ArrayList'

_CAPABILITIES_TEMPLATE = '''<?xml version="1.0" encoding="utf-8"?>
<w:robot xmlns:w="http://wave.google.com/extensions/robots/1.0">
  <w:version>{{ version }}</w:version>
  <w:capabilities>
  {%- for capability in capabilities %}
    <w:capability name="{{ capability }}" content="true" />
  {%- endfor %}
  </w:capabilities>
  {%- if name %}
  <w:profile name="{{ name }}"{% if image_url %} imageurl="{{ image_url }}"{% endif %}{% if profile_url %} profileurl="{{ profile_url }}"{% endif %} />
  {%- endif %}
</w:robot>
'''

_templates = jinja2.Environment(autoescape=True)


class RobotError(AppEngineAPIError):

    ''' Base class for robot errors. '''


class UnknownCommand(RobotError):

    ''' A command was requested that the robot does not offer. '''


class BadBundle(RobotError, ValueError):

    ''' An incoming event bundle could not be decoded. '''


def unwrap(value):

    ''' Strip ``{"list": [...]}`` and ``{"map": {...}}`` collection envelopes,
        recursively. '''

    if isinstance(value, dict):
        if 'list' in value and isinstance(value['list'], list):
            return [unwrap(item) for item in value['list']]
        if 'map' in value and isinstance(value['map'], dict):
            return dict((k, unwrap(v)) for k, v in value['map'].items())
        return dict((k, unwrap(v)) for k, v in value.items() if k != 'javaClass')
    if isinstance(value, list):
        return [unwrap(item) for item in value]
    return value


Operation = collections.namedtuple('Operation', ['type', 'wave_id', 'wavelet_id', 'blip_id', 'index', 'property'])


def _operation_json(operation):
    return {
        'javaClass': _OPERATION_CLASS,
        'type': operation.type,
        'waveId': operation.wave_id,
        'waveletId': operation.wavelet_id,
        'blipId': operation.blip_id,
        'index': operation.index,
        'property': operation.property}


## Event
class Event(object):

    ''' An incoming robot event. '''

    def __init__(self, data):
        self.type = data.get('type')
        self.timestamp = data.get('timestamp')
        self.modified_by = data.get('modifiedBy')
        self.properties = DictProxy(data.get('properties') or {})

    def __repr__(self):
        return '<Event %s by %s>' % (self.type, self.modified_by)


## Wavelet
class Wavelet(object):

    ''' A wavelet, as described by the incoming bundle. '''

    def __init__(self, data, context):
        self.context = context
        self.wave_id, self.wavelet_id = data.get('waveId'), data.get('waveletId')
        self.root_blip_id = data.get('rootBlipId')
        self.title, self.creator = data.get('title'), data.get('creator')
        self.participants = list(data.get('participants') or [])

    @property
    def root_blip(self):
        return self.context.get_blip_by_id(self.root_blip_id)

    def __repr__(self):
        return '<Wavelet %s/%s>' % (self.wave_id, self.wavelet_id)


## Document
class Document(object):

    ''' Text content of a blip. Edits are queued as operations on the
        context. '''

    def __init__(self, blip):
        self.blip = blip

    @property
    def text(self):
        return self.blip.content

    def _queue(self, type, text):
        blip = self.blip
        blip.context.operations.append(Operation(type, blip.wave_id, blip.wavelet_id, blip.blip_id, -1, text))

    def set_text(self, text):

        ''' Replace the blip's whole text. '''

        self.blip.content = text
        self._queue(DOCUMENT_REPLACE, text)

    def append_text(self, text):
        self.blip.content = (self.blip.content or '') + text
        self._queue(DOCUMENT_APPEND, text)


## Blip
class Blip(object):

    ''' A blip, as described by the incoming bundle. '''

    def __init__(self, data, context):
        self.context = context
        self.blip_id = data.get('blipId')
        self.wave_id, self.wavelet_id = data.get('waveId'), data.get('waveletId')
        self.content = data.get('content') or ''
        self.parent_blip_id = data.get('parentBlipId')
        self.child_blip_ids = list(data.get('childBlipIds') or [])
        self.contributors = list(data.get('contributors') or [])
        self.creator = data.get('creator')
        self.document = Document(self)

    def __repr__(self):
        return '<Blip %s>' % self.blip_id


## Context
class Context(object):

    ''' Wavelets and blips from one incoming bundle, plus the operations
        queued in response. '''

    def __init__(self, events=None, wavelets=None, blips=None, robot_address=None):
        self.events = list(events or [])
        self.wavelets = list(wavelets or [])
        self.blips = collections.OrderedDict((blip.blip_id, blip) for blip in (blips or []))
        self.robot_address = robot_address
        self.operations = []

    @classmethod
    def from_bundle(cls, bundle):

        ''' Decode an event bundle (a ``dict`` or a JSON string). '''

        if isinstance(bundle, (str, bytes)):
            try:
                bundle = json.loads(bundle)
            except ValueError as e:
                raise BadBundle('Could not decode event bundle: %s' % e)
        if not isinstance(bundle, dict):
            raise BadBundle('Event bundles must be JSON objects, got %r.' % (bundle,))

        bundle = unwrap(bundle)
        context = cls(robot_address=bundle.get('robotAddress'))
        context.events = [Event(event) for event in bundle.get('events') or []]
        wavelets = bundle.get('wavelet')
        if isinstance(wavelets, dict):
            wavelets = [wavelets]
        context.wavelets = [Wavelet(wavelet, context) for wavelet in wavelets or []]
        for blip in (bundle.get('blips') or {}).values():
            blip = Blip(blip, context)
            context.blips[blip.blip_id] = blip
        return context

    def get_blip_by_id(self, blip_id):
        return self.blips.get(blip_id)

    def __repr__(self):
        return '<Context %d wavelets, %d blips, %d operations>' % (
            len(self.wavelets), len(self.blips), len(self.operations))


## AbstractRobot
# Base class for robots; subclasses define event handlers and commands.
@decorators.config(path='appengine_apis.robot')
class AbstractRobot(object):

    ''' Dispatches events to methods named after the event type, called
        with ``(properties, context)``, and commands to methods named in
        :py:meth:`extra_commands`, called with ``(event, context)``. '''

    version = '1'

    def __init__(self, name=None, image_url=None, profile_url=None):
        config = self.config
        self.robot_name = name or config.get('name', 'appengine-robot')
        self.image_url = image_url or config.get('image_url')
        self.profile_url = profile_url or config.get('profile_url')

    def extra_commands(self):

        ''' Names of capabilities beyond event handlers. '''

        return []

    def event_handlers(self):
        return [event for event in EVENT_TYPES if callable(getattr(self, event, None))]

    def capability_names(self):
        return self.event_handlers() + [c for c in self.extra_commands() if c not in EVENT_TYPES]

    def capabilities(self):

        ''' Capabilities descriptor, as XML. '''

        return _templates.from_string(_CAPABILITIES_TEMPLATE).render(
            version=self.version,
            capabilities=self.capability_names(),
            name=self.robot_name,
            image_url=self.image_url,
            profile_url=self.profile_url)

    def execute_json_rpc(self, bundle):

        ''' Dispatch each event in ``bundle`` to its handler. Events with no
            handler are skipped. Returns the :py:class:`Context`. '''

        context = Context.from_bundle(bundle)
        for event in context.events:
            handler = getattr(self, event.type, None) if event.type in EVENT_TYPES else None
            if callable(handler):
                self.logging.debug('Dispatching %s.' % event.type)
                handler(event.properties, context)
        return context

    def run_command(self, command, bundle):

        ''' Dispatch ``command`` with the bundle's first event. Returns the
            :py:class:`Context`.

            :raises UnknownCommand: If ``command`` isn't a capability. '''

        handler = getattr(self, command, None) if command in self.capability_names() else None
        if not callable(handler):
            raise UnknownCommand('Unknown robot command: %s' % command)

        context = Context.from_bundle(bundle)
        event = context.events[0] if context.events else None
        if command in EVENT_TYPES:
            handler(event.properties if event else DictProxy(), context)
        else:
            handler(event, context)
        return context

    @staticmethod
    def serialize_context(context):

        ''' JSON operations bundle for the operations queued on ``context``. '''

        return json.dumps({
            'javaClass': _BUNDLE_CLASS,
            'operations': {
                'javaClass': _LIST_CLASS,
                'list': [_operation_json(operation) for operation in context.operations]}})
