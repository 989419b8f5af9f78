"""
交互菜单

13 个功能 + 退出。每个功能独立捕获设备错误与输入错误，失败后回到菜单。
"""
from typing import Callable, Dict, Optional, TextIO, Tuple

from ..core.errors import HVCError
from ..core.logger import logger
from ..core.runtime_switch import RuntimeSwitch
from .key_listener import STOP_KEYS, KeyStopListener
from .sessions import HVCSession

MENU_ITEMS: Tuple[Tuple[int, str], ...] = (
    (1, "Detection/Estimation"),
    (2, "Recognition(Identify)"),
    (3, "Recognition(Verify)"),
    (4, "Register data"),
    (5, "Delete specified data"),
    (6, "Delete specified user"),
    (7, "Delete all data"),
    (8, "Save Album"),
    (9, "Load Album"),
    (10, "Save Album on Flash ROM"),
    (11, "Reformat Flash ROM"),
    (12, "Set Number of registered people in album"),
    (13, "Get Number of registered people in album"),
)

# 此编号及以上的功能执行后等待按键再回到菜单
PAUSE_FROM = 4


class Menu:
    """
    菜单循环

    Args:
        session: 功能会话
        input_fn: 行输入函数（默认 input）
        output: 文本输出回调
        stop_stream: 检测循环停止键的输入流（默认 sys.stdin）
    """

    def __init__(
        self,
        session: HVCSession,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        stop_stream: Optional[TextIO] = None,
    ):
        self.session = session
        self.input_fn = input_fn
        self.output = output
        self.stop_switch = RuntimeSwitch(initial=False, name="detection-stop")
        self.stop_stream = stop_stream
        self._listener: Optional[KeyStopListener] = None
        self._actions: Dict[int, Callable[[], None]] = {
            1: self._detection,
            2: self._identify,
            3: self._verify,
            4: self._register,
            5: self._delete_data,
            6: self._delete_user,
            7: session.delete_all,
            8: session.save_album,
            9: session.load_album,
            10: session.write_album,
            11: session.reformat_album,
            12: self._set_regist_count,
            13: session.get_regist_count,
        }

    # ---------- 输入 ----------

    def _input(self, prompt: str) -> str:
        """读一行；检测监听线程还占着输入流时从它那里取"""
        listener = self._listener
        if listener is not None and listener.has_pending():
            self.output(prompt)
            return listener.next_line()
        return self.input_fn(prompt)

    def _read_int(self, prompt: str, error: str) -> int:
        text = self._input(prompt).strip()
        try:
            return int(text)
        except ValueError:
            raise ValueError(error) from None

    def _enter_trigger(self) -> bool:
        """Enter 执行一帧，空格或 q 结束"""
        try:
            line = self._input("")
        except EOFError:
            return False
        return not line.startswith(STOP_KEYS)

    # ---------- 功能 ----------

    def _detection(self):
        self.output("\nPress Space Key to end: ")
        listener = KeyStopListener(self.stop_switch, self.stop_stream)
        self._listener = listener
        listener.start()
        try:
            self.session.run_detection(listener.continue_running)
        finally:
            self.stop_switch.trigger(source="session")
            listener.join()

    def _identify(self):
        self.output("\nPress the Enter Key to Detection and the Space Key to end: ")
        self.session.run_identify(self._enter_trigger)

    def _verify(self):
        user_id = self._read_int("\nInput user ID : ", "Invalid user ID")
        self.output("\nPress the Enter Key to Detection and the Space Key to end: ")
        self.session.run_verify(user_id, self._enter_trigger)

    def _register(self):
        user_id = self._read_int("\nInput user ID : ", "Invalid user ID")
        data_id = self._read_int("Input data ID : ", "Invalid data ID")
        self._input("\nPress the Enter Key to register a face : ")
        self.session.register(user_id, data_id)

    def _delete_data(self):
        user_id = self._read_int("\nInput user ID : ", "Invalid user ID")
        data_id = self._read_int("Input data ID : ", "Invalid data ID")
        self.session.delete_data(user_id, data_id)

    def _delete_user(self):
        user_id = self._read_int("\nInput user ID : ", "Invalid user ID")
        self.session.delete_user(user_id)

    def _set_regist_count(self):
        index = self._read_int("\nInput user count [0:100 1:500 2:1000] : ", "Invalid user count")
        self.session.set_regist_count(index)

    # ---------- 主循环 ----------

    def print_menu(self):
        lines = ["\n", "Execute function", ""]
        lines += [f"{number:3d} : {label}" for number, label in MENU_ITEMS]
        lines += ["", "  0 : Exit"]
        self.output("\n".join(lines))

    def dispatch(self, func_no: int) -> bool:
        """
        执行一个功能

        Returns:
            False 表示退出菜单
        """
        if func_no == 0:
            return False

        action = self._actions.get(func_no)
        if action is None:
            self.output("Invalid number")
            return True

        name = dict(MENU_ITEMS)[func_no]
        logger.info(f"Menu function {func_no}: {name}")
        try:
            action()
        except HVCError as e:
            logger.error(f"{name} failed: {e}")
            self.output(f"\n{name} Error : {e}\n")
        except ValueError as e:
            self.output(f"\n{e}\n")
        return True

    def run(self):
        """菜单循环，选择 0 或输入结束时返回"""
        while True:
            self.print_menu()
            try:
                text = self._input("\nSelect function : ").strip()
            except EOFError:
                logger.info("Input closed, leaving menu")
                return

            try:
                func_no = int(text)
            except ValueError:
                func_no = -1

            if not self.dispatch(func_no):
                return

            if func_no >= PAUSE_FROM:
                try:
                    self._input("\n< Press any key to return to menu. >\n")
                except EOFError:
                    return
