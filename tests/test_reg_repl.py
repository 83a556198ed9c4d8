"""Tests for reg_repl – register shell parsing, transfers and output."""

import io
import unittest

from fake_transport import FakeTransport

from usb_billboard.constants import REQ_GET_RD_REG, REQ_GET_WR_REG, Recipient
from usb_billboard.device_base import TransportError, TransportTimeout
from usb_billboard.reg_repl import WRITE_DONE, RegisterRepl, format_read

REG_REPLY = bytes([0x1E, 0x04, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00])


def _repl(replies=None, script=''):
    dev = FakeTransport(replies)
    out, err = io.StringIO(), io.StringIO()
    repl = RegisterRepl(dev, io.StringIO(script), out, err, prompt='')
    return repl, dev, out, err


class TestFormatRead(unittest.TestCase):

    def test_layout(self):
        self.assertEqual(format_read(0, 0x100, REG_REPLY),
                         '[READ 00::0100] 1E 04 00 00 00 00 00 00')

    def test_no_data(self):
        self.assertEqual(format_read(0xAB, 0x2, b''), '[READ AB::0002] (no data)')


class TestReadCommand(unittest.TestCase):

    def test_read_scenario(self):
        """`r 0 100` → value 0, index 0x100, length 8, bytes shown verbatim."""
        repl, dev, out, err = _repl({REQ_GET_RD_REG: [REG_REPLY]})
        self.assertTrue(repl.execute('r 0 100'))

        req = dev.requests[0]
        self.assertEqual(req.request, 0x12)
        self.assertEqual(req.recipient, Recipient.DEVICE)
        self.assertEqual((req.value, req.index, req.length), (0x00, 0x0100, 8))
        self.assertEqual(out.getvalue(), '[READ 00::0100] 1E 04 00 00 00 00 00 00\n')
        self.assertEqual(err.getvalue(), '')

    def test_prefixed_numbers(self):
        repl, dev, out, _ = _repl({REQ_GET_RD_REG: [REG_REPLY]})
        repl.execute('r 0x1F 0x0010')
        self.assertEqual((dev.requests[0].value, dev.requests[0].index), (0x1F, 0x10))

    def test_read_returns_data(self):
        repl, _, _, _ = _repl({REQ_GET_RD_REG: [REG_REPLY]})
        self.assertEqual(repl.read(0, 0x100), REG_REPLY)


class TestWriteCommand(unittest.TestCase):

    def test_write_scenario(self):
        """`w 0 2 FF` → value 0x00FF, index 2, no reply bytes needed."""
        repl, dev, out, err = _repl()
        self.assertTrue(repl.execute('w 0 2 FF'))

        req = dev.requests[0]
        self.assertEqual(req.request, REQ_GET_WR_REG)
        self.assertEqual(req.recipient, Recipient.DEVICE)
        self.assertEqual((req.value, req.index, req.length), (0x00FF, 0x0002, 0))
        self.assertEqual(out.getvalue(), WRITE_DONE + '\n')
        self.assertEqual(err.getvalue(), '')

    def test_address_in_high_byte(self):
        repl, dev, _, _ = _repl()
        repl.execute('w 12 3456 78')
        self.assertEqual(dev.requests[0].value, 0x1278)
        self.assertEqual(dev.requests[0].index, 0x3456)


class TestBadInput(unittest.TestCase):

    def test_non_hex_token(self):
        repl, dev, out, err = _repl()
        self.assertTrue(repl.execute('r zz 100'))
        self.assertEqual(dev.requests, [])
        self.assertIn('zz', err.getvalue())
        self.assertEqual(out.getvalue(), '')

    def test_wrong_arity(self):
        repl, dev, _, err = _repl()
        for line in ('r 0', 'w 0 1', 'r 0 1 2', 'x 1 2'):
            self.assertTrue(repl.execute(line))
        self.assertEqual(dev.requests, [])
        self.assertEqual(err.getvalue().count('\n'), 4)

    def test_out_of_range(self):
        repl, dev, _, err = _repl()
        repl.execute('w 100 0 0')
        repl.execute('w 0 0 1FF')
        repl.execute('r 0 10000')
        self.assertEqual(dev.requests, [])
        self.assertEqual(err.getvalue().count('\n'), 3)

    def test_blank_line_ignored(self):
        repl, dev, out, err = _repl()
        self.assertTrue(repl.execute('   \n'))
        self.assertEqual((out.getvalue(), err.getvalue()), ('', ''))


class TestTransportErrors(unittest.TestCase):
    """A failed transfer is reported; the shell keeps going."""

    def test_read_timeout_reported(self):
        repl, _, out, err = _repl({REQ_GET_RD_REG: [TransportTimeout('read-register')]})
        self.assertTrue(repl.execute('r 0 100'))
        self.assertIn('read-register failed', err.getvalue())
        self.assertEqual(out.getvalue(), '')

    def test_write_error_reported(self):
        repl, _, out, err = _repl({REQ_GET_WR_REG: [TransportError('write-register', OSError('pipe'))]})
        self.assertTrue(repl.execute('w 0 2 FF'))
        self.assertIn('write-register failed: pipe', err.getvalue())
        self.assertNotIn(WRITE_DONE, out.getvalue())


class TestRun(unittest.TestCase):

    def test_quit_words(self):
        for word in ('q', 'quit', 'exit', 'Q'):
            repl, _, _, _ = _repl()
            self.assertFalse(repl.execute(word))

    def test_script_until_quit(self):
        script = 'r 0 100\nbogus\nw 0 2 FF\nq\nr 0 0\n'
        repl, dev, out, err = _repl({REQ_GET_RD_REG: [REG_REPLY]}, script)
        repl.run()
        self.assertEqual(len(dev.requests), 2)  # nothing after q
        self.assertEqual(out.getvalue().splitlines(),
                         ['[READ 00::0100] 1E 04 00 00 00 00 00 00', WRITE_DONE])
        self.assertIn('bogus', err.getvalue())

    def test_eof_ends_shell(self):
        repl, dev, _, _ = _repl(script='w 1 1 1\n')
        repl.run()
        self.assertEqual(len(dev.requests), 1)

    def test_prompt_written(self):
        dev = FakeTransport()
        out = io.StringIO()
        RegisterRepl(dev, io.StringIO('q\n'), out, io.StringIO()).run()
        self.assertEqual(out.getvalue(), '> ')


if __name__ == '__main__':
    unittest.main()
