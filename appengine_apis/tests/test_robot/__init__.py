# -*- coding: utf-8 -*-

'''

    appengine_apis robot tests: `appengine_apis.robot`

    testsuite for robot event dispatch and the sample robot's webhook
    app, plus a canned event bundle to drive them.

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
import copy

# appengine_apis
from appengine_apis.util import json


_BUNDLE = {
    'javaClass': 'com.google.wave.api.impl.EventMessageBundle',
    'robotAddress': 'appengine-robot@appspot.com',
    'events': {
        'javaClass': 'java.util.ArrayList',
        'list': [{
            'javaClass': 'com.google.wave.api.impl.EventData',
            'type': 'DOCUMENT_CHANGED',
            'timestamp': 1241179200000,
            'modifiedBy': 'fred@googlewave.com',
            'properties': {'javaClass': 'java.util.HashMap', 'map': {'blipId': 'b+root'}}}]},
    'wavelet': {
        'javaClass': 'com.google.wave.api.impl.WaveletData',
        'waveId': 'googlewave.com!w+abc',
        'waveletId': 'googlewave.com!conv+root',
        'rootBlipId': 'b+root',
        'title': 'Bedrock',
        'creator': 'fred@googlewave.com',
        'participants': {'javaClass': 'java.util.ArrayList', 'list': ['fred@googlewave.com']}},
    'blips': {
        'javaClass': 'java.util.HashMap',
        'map': {
            'b+root': {
                'javaClass': 'com.google.wave.api.impl.BlipData',
                'blipId': 'b+root',
                'waveId': 'googlewave.com!w+abc',
                'waveletId': 'googlewave.com!conv+root',
                'content': '\nYabba dabba doo',
                'creator': 'fred@googlewave.com',
                'contributors': {'javaClass': 'java.util.ArrayList', 'list': ['fred@googlewave.com']},
                'childBlipIds': {'javaClass': 'java.util.ArrayList', 'list': []}}}}
}


def event_bundle(event_type='DOCUMENT_CHANGED', as_json=True):

    ''' Canned bundle holding one ``event_type`` event on a one-blip wavelet. '''

    bundle = copy.deepcopy(_BUNDLE)
    bundle['events']['list'][0]['type'] = event_type
    return json.dumps(bundle) if as_json else bundle
