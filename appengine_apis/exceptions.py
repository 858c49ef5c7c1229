# -*- coding: utf-8 -*-

'''

    appengine_apis exceptions

    holds the base exception raised by the service bindings.

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


## AppEngineAPIError
# All exceptions raised by a service binding extend this.
class AppEngineAPIError(Exception):

    ''' All binding-level exceptions should inherit from this. '''

    message = None

    def __init__(self, message=None, *args):

        ''' Store ``message`` so it survives translation. '''

        self.message = message if message is not None else self.message
        if self.message is None:
            super(AppEngineAPIError, self).__init__(*args)
        else:
            super(AppEngineAPIError, self).__init__(self.message, *args)
