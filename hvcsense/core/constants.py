"""
系统常量配置

默认值与 HVC 模块出厂样例程序保持一致，system_config.json 中未配置的项使用这里的值。
"""


class Constants:
    """系统常量"""
    # 串口配置
    SUPPORTED_BAUDRATES = (9600, 38400, 115200, 230400, 460800, 921600)
    INITIAL_BAUDRATE = 9600  # 模块上电后的默认波特率

    # 命令超时（毫秒）
    UART_GENERAL_TIMEOUT = 1000
    UART_EXECUTE_TIMEOUT = (10 + 10 + 6 + 3 + 15 + 15 + 1 + 1 + 15 + 10) * 1000
    UART_WRITE_ALBUM_TIMEOUT = 5000
    UART_REFORMAT_ALBUM_TIMEOUT = 10000
    UART_REGIST_COUNT_TIMEOUT = UART_REFORMAT_ALBUM_TIMEOUT + 1000

    # 相机安装角度（0: 0°, 1: 90°, 2: 180°, 3: 270°）
    SENSOR_ROLL_ANGLE = 0

    # 检测阈值
    BODY_THRESHOLD = 500
    HAND_THRESHOLD = 500
    FACE_THRESHOLD = 500
    REC_THRESHOLD = 500
    VERIFY_THRESHOLD = 500

    # 检测尺寸范围 (min, max)
    BODY_SIZE_RANGE = (30, 8192)
    HAND_SIZE_RANGE = (40, 8192)
    FACE_SIZE_RANGE = (64, 8192)

    # 人脸检测姿态（0: 正脸）与旋转角度（0: ±15°）
    FACE_POSE = 0
    FACE_ANGLE = 0

    # 稳定化（跟踪器）参数
    STB_RETRY_COUNT = 2
    STB_POS_STEADINESS = 30
    STB_SIZE_STEADINESS = 30

    # 属性估计（年龄/性别）稳定化参数
    STB_PE_FRAME = 10
    STB_PE_THRESHOLD = 300
    STB_PE_ANGLE_UD = (-15, 20)
    STB_PE_ANGLE_LR = (-20, 20)

    # 人脸识别稳定化参数
    STB_FR_FRAME = 5
    STB_FR_RATIO = 60
    STB_FR_THRESHOLD = 300
    STB_FR_ANGLE_UD = (-15, 20)
    STB_FR_ANGLE_LR = (-20, 20)

    # 相册 / 注册
    ALBUM_FILE = "HVCAlbum.alb"
    USER_ID_RANGE = (0, 999)
    DATA_ID_RANGE = (0, 9)
    REGIST_COUNT_TABLE = (100, 500, 1000)
